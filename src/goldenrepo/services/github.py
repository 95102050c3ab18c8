"""GitHub App authentication and clone URL helpers."""

import time
from typing import Callable, Optional, Tuple

import jwt
import requests
from cryptography.hazmat.primitives import serialization

from goldenrepo.constants import GITHUB_API_URL, GITHUB_HOST, JWT_TTL_SECONDS
from goldenrepo.errors import GoldenRepoError
from goldenrepo.errors_catalog import actionable_error
from goldenrepo.models import SecretBundle
from goldenrepo.services.payloads import extract_json_value, response_json


class GitHubService:
    """Exchanges GitHub App credentials for an installation token."""

    def __init__(
        self,
        logger,
        filesystem_service,
        requests_module=requests,
        api_url: str = GITHUB_API_URL,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.logger = logger
        self.filesystem_service = filesystem_service
        self.requests = requests_module
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.clock = clock

    @staticmethod
    def extract_organization(repository_url: Optional[str]) -> str:
        if not repository_url:
            raise GoldenRepoError(actionable_error("missing_variable", name="APP_REPOSITORY_URL"))

        # https://github.com/<org>/<repo>: the org is the 4th slash-delimited field.
        fields = repository_url.split("/")
        org = fields[3].strip() if len(fields) > 3 else ""
        if not org:
            raise GoldenRepoError(
                f"Could not extract the organization from repository URL: {repository_url}"
            )
        return org

    def build_app_jwt(self, app_id: str, private_key_path: str) -> str:
        now = int(self.clock())
        payload = {"iat": now, "exp": now + JWT_TTL_SECONDS, "iss": app_id}

        try:
            with open(private_key_path, "rb") as key_file:
                private_key = serialization.load_pem_private_key(key_file.read(), password=None)
            return jwt.encode(payload, private_key, algorithm="RS256", headers={"typ": "JWT"})
        except (OSError, ValueError, TypeError, jwt.PyJWTError) as exc:
            raise GoldenRepoError(f"Could not sign the GitHub App JWT: {exc}") from exc

    def generate_installation_token(self, credentials: SecretBundle) -> str:
        self.logger.info("Generating JWT for GitHub App (App ID: %s)...", credentials.app_id)
        with self.filesystem_service.private_temp_file(credentials.private_key) as key_path:
            assertion = self.build_app_jwt(credentials.app_id, key_path)

        self.logger.info(
            "Requesting installation token (Installation ID: %s)...",
            credentials.installation_id,
        )
        url = f"{self.api_url}/app/installations/{credentials.installation_id}/access_tokens"
        try:
            response = self.requests.post(
                url,
                headers={
                    "Authorization": f"Bearer {assertion}",
                    "Accept": "application/vnd.github+json",
                },
                timeout=self.timeout,
            )
        except self.requests.RequestException as exc:
            raise GoldenRepoError(actionable_error("github_unreachable", detail=str(exc))) from exc

        token = extract_json_value(response_json(response), "token")
        if token is None:
            status = getattr(response, "status_code", "unknown")
            self.logger.error("GitHub API response: %s", getattr(response, "text", ""))
            raise GoldenRepoError(actionable_error("invalid_github_token", status=str(status)))
        return token

    @staticmethod
    def build_clone_urls(repository_url: Optional[str], token: Optional[str]) -> Tuple[str, str]:
        """Returns ``(clone_url, repo_path)`` for an authenticated HTTPS clone."""
        if not repository_url or not token:
            missing = "APP_REPOSITORY_URL" if not repository_url else "GITHUB_TOKEN"
            raise GoldenRepoError(actionable_error("missing_variable", name=missing))

        path = repository_url.split("://", 1)[-1]
        host, _, path = path.partition("/")
        path = path.strip("/")
        if path.endswith(".git"):
            path = path[: -len(".git")]
        repo_path = f"{path}.git"
        clone_url = f"https://x-access-token:{token}@{host or GITHUB_HOST}/{repo_path}"
        return clone_url, repo_path
