"""Platform API and CLI access for golden-repo-sync."""

import json
from typing import Any, Dict, Optional

import requests

from goldenrepo.constants import NP_BINARY, PLATFORM_API_URL
from goldenrepo.errors import GoldenRepoError
from goldenrepo.errors_catalog import actionable_error
from goldenrepo.services.payloads import extract_json_value, loads_object, response_json


class PlatformService:
    """Mints platform tokens and reads application data."""

    def __init__(
        self,
        logger,
        command_runner,
        requests_module=requests,
        api_url: str = PLATFORM_API_URL,
        np_binary: str = NP_BINARY,
        timeout: Optional[float] = None,
    ):
        self.logger = logger
        self.command_runner = command_runner
        self.requests = requests_module
        self.api_url = api_url.rstrip("/")
        self.np_binary = np_binary
        self.timeout = timeout

    def generate_token(self, api_key: Optional[str]) -> str:
        if not api_key:
            raise GoldenRepoError(actionable_error("missing_variable", name="NP_API_KEY"))

        url = f"{self.api_url}/token"
        self.logger.info("Requesting platform access token...")
        try:
            response = self.requests.post(
                url,
                json={"api_key": api_key},
                headers={"content-type": "application/json"},
                timeout=self.timeout,
            )
        except self.requests.RequestException as exc:
            raise GoldenRepoError(
                actionable_error("platform_unreachable", url=url, detail=str(exc))
            ) from exc

        token = extract_json_value(response_json(response), "access_token")
        if token is None:
            raise GoldenRepoError(actionable_error("invalid_platform_token"))
        return token

    def read_application(self, app_id: Optional[str]) -> Dict[str, str]:
        """Reads the application and returns its attributes flattened to strings."""
        payload = self._read(app_id, query=None, what="application")
        return self.flatten_attributes(payload)

    def read_metadata(self, app_id: Optional[str]) -> Dict[str, Any]:
        return self._read(app_id, query=".metadata", what="application metadata")

    def _read(self, app_id: Optional[str], query: Optional[str], what: str) -> Dict[str, Any]:
        if not app_id:
            raise GoldenRepoError(actionable_error("missing_variable", name="APP_ID"))

        cmd = [self.np_binary, "application", "read", "--id", app_id, "--format", "json"]
        if query:
            cmd += ["--query", query]

        result = self.command_runner.run(cmd, capture_output=True)
        if query and (result.stdout or "").strip() == "null":
            return {}

        payload = loads_object(result.stdout)
        if payload is None:
            raise GoldenRepoError(f"`np application read` returned malformed {what} for {app_id}.")
        return payload

    @classmethod
    def flatten_attributes(cls, payload: Dict[str, Any], parent: str = "") -> Dict[str, str]:
        flattened: Dict[str, str] = {}
        for key, value in payload.items():
            name = f"{parent}_{key}" if parent else str(key)
            if isinstance(value, dict) and value:
                flattened.update(cls.flatten_attributes(value, name))
            else:
                flattened[name.upper()] = cls._as_text(value)
        return flattened

    @staticmethod
    def _as_text(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (dict, list)):
            return json.dumps(value, sort_keys=True)
        return str(value)
