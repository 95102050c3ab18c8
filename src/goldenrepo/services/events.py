"""Inbound action-context parsing for golden-repo-sync."""

import json
from typing import Any, Dict, Mapping, Optional

from goldenrepo.constants import (
    NOTIFICATION_PREFIX,
    NRN_APPLICATION_DELIMITER,
    NRN_SEGMENT_SEPARATOR,
)
from goldenrepo.errors import GoldenRepoError
from goldenrepo.errors_catalog import actionable_error


class EventService:
    """Turns entity-hook payloads into notification variables."""

    APPLICATION_ENTITY = "application"

    def parse_action_context(self, raw: Optional[str]) -> Dict[str, str]:
        if not raw or not raw.strip():
            raise GoldenRepoError(actionable_error("missing_variable", name="NP_ACTION_CONTEXT"))

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise GoldenRepoError(f"NP_ACTION_CONTEXT is not valid JSON: {exc}") from exc

        notification = payload.get("notification") if isinstance(payload, dict) else None
        if not isinstance(notification, dict):
            raise GoldenRepoError("NP_ACTION_CONTEXT does not contain a `notification` object.")

        return {
            f"{NOTIFICATION_PREFIX}{key.upper()}": self._stringify(value)
            for key, value in notification.items()
        }

    def is_application_event(self, variables: Mapping[str, str]) -> bool:
        return variables.get(f"{NOTIFICATION_PREFIX}ENTITY") == self.APPLICATION_ENTITY

    def extract_app_id(self, nrn: Optional[str]) -> str:
        if not nrn:
            raise GoldenRepoError(actionable_error("missing_variable", name="NOTIFICATION_NRN"))

        _, found, remainder = nrn.partition(NRN_APPLICATION_DELIMITER)
        app_id = remainder.split(NRN_SEGMENT_SEPARATOR, 1)[0].strip() if found else ""
        if not app_id:
            raise GoldenRepoError(actionable_error("unparseable_nrn", nrn=nrn))
        return app_id

    @staticmethod
    def _stringify(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (dict, list)):
            return json.dumps(value, sort_keys=True)
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)
