"""AWS Secrets Manager lookups for golden-repo-sync."""

from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from goldenrepo.constants import SECRET_ID_PREFIX
from goldenrepo.errors import GoldenRepoError
from goldenrepo.errors_catalog import actionable_error
from goldenrepo.models import SecretBundle
from goldenrepo.services.payloads import extract_json_value, loads_object


class SecretStoreService:
    """Resolves per-organization GitHub App credentials."""

    REQUIRED_FIELDS = ("app_id", "installation_id", "private_key")

    def __init__(
        self,
        logger,
        client=None,
        prefix: str = SECRET_ID_PREFIX,
        region_name: Optional[str] = None,
    ):
        self.logger = logger
        self.prefix = prefix
        self.region_name = region_name
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("secretsmanager", region_name=self.region_name)
        return self._client

    def secret_id_for(self, org: str) -> str:
        return f"{self.prefix}{org}"

    def get_app_credentials(self, org: Optional[str]) -> SecretBundle:
        if not org:
            raise GoldenRepoError(actionable_error("missing_variable", name="GITHUB_ORG"))

        secret_id = self.secret_id_for(org)
        self.logger.info("Reading GitHub App credentials from secret %s", secret_id)
        try:
            response = self.client.get_secret_value(SecretId=secret_id)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "ClientError")
            raise GoldenRepoError(
                actionable_error("secret_unavailable", secret_id=secret_id, detail=code)
            ) from exc
        except BotoCoreError as exc:
            raise GoldenRepoError(
                actionable_error("secret_unavailable", secret_id=secret_id, detail=str(exc))
            ) from exc

        payload = loads_object(response.get("SecretString") or "")
        if payload is None:
            raise GoldenRepoError(
                actionable_error(
                    "secret_unavailable",
                    secret_id=secret_id,
                    detail="SecretString is not a JSON object",
                )
            )

        values = {name: extract_json_value(payload, name) for name in self.REQUIRED_FIELDS}
        missing = [name for name, value in values.items() if value is None]
        if missing:
            raise GoldenRepoError(
                actionable_error("incomplete_secret", secret_id=secret_id, fields=", ".join(missing))
            )

        return SecretBundle(
            app_id=values["app_id"],
            installation_id=values["installation_id"],
            private_key=self.normalize_private_key(values["private_key"]),
        )

    @staticmethod
    def normalize_private_key(private_key: str) -> str:
        # Keys are often stored with literal "\n" sequences instead of newlines.
        key = private_key.replace("\\n", "\n").strip()
        return f"{key}\n"
