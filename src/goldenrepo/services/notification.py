"""Callback notifications for golden-repo-sync.

Two tiers share one sender:

* ``try_notify`` is best-effort. It silently does nothing until both the
  callback URL and the platform token are known, and never raises.
* ``notify`` and ``send_final_status`` are mandatory. They raise
  ``GoldenRepoError`` when credentials are missing or the request cannot be
  delivered, and only warn about non-2xx responses.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from goldenrepo.errors import GoldenRepoError


class NotificationService:
    """Posts progress messages and final status to the action callback."""

    def __init__(self, logger, requests_module=requests, timeout: Optional[float] = None):
        self.logger = logger
        self.requests = requests_module
        self.timeout = timeout
        self.callback_url: Optional[str] = None
        self.token: Optional[str] = None

    def configure(self, callback_url: Optional[str] = None, token: Optional[str] = None):
        if callback_url is not None:
            self.callback_url = callback_url.rstrip("/") or None
        if token is not None:
            self.token = token or None

    @property
    def available(self) -> bool:
        return bool(self.callback_url and self.token)

    def try_notify(self, level: str, message: str) -> bool:
        if not self.available:
            return False

        try:
            self._send("POST", f"{self.callback_url}/message", self._message_payload(level, message))
        except (self.requests.RequestException, ValueError) as exc:
            self.logger.debug("Best-effort notification was not delivered: %s", exc)
            return False
        return True

    def notify(self, level: str = "info", message: str = "Process executed"):
        self._ensure_available()
        response = self._deliver(
            "POST",
            f"{self.callback_url}/message",
            self._message_payload(level, message),
            what="notification message",
        )
        if self._is_success(response):
            self.logger.info("Notification sent: [%s] %s", level, message)

    def send_final_status(self, status: str = "success", execution_status: str = "success"):
        self._ensure_available()
        self.logger.info(
            "Sending final status: status=%s, execution_status=%s",
            status,
            execution_status,
        )
        response = self._deliver(
            "PATCH",
            self.callback_url,
            {"status": status, "execution_status": execution_status},
            what="final status",
        )
        if self._is_success(response):
            self.logger.info("Final status sent.")

    def _ensure_available(self):
        if not self.available:
            raise GoldenRepoError(
                "Notification variables are not configured (callback URL and platform token)."
            )

    def _deliver(self, method: str, url: str, payload: Dict[str, Any], what: str):
        try:
            return self._send(method, url, payload)
        except (self.requests.RequestException, ValueError) as exc:
            raise GoldenRepoError(f"Could not send {what}: {exc}") from exc

    def _send(self, method: str, url: str, payload: Dict[str, Any]):
        return self.requests.request(
            method,
            url,
            json=payload,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.token}",
            },
            timeout=self.timeout,
        )

    def _is_success(self, response) -> bool:
        status_code = getattr(response, "status_code", 0)
        if 200 <= status_code < 300:
            return True
        self.logger.warning("Callback answered with unexpected status (HTTP %s)", status_code)
        return False

    @staticmethod
    def _message_payload(level: str, message: str) -> Dict[str, str]:
        sent_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
        return {"level": level, "message": f"{message} at {sent_at}"}
