"""Shared domain models for golden-repo-sync."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from .constants import APP_PREFIX


class PipelineState(str, Enum):
    """Process-level states, in the order the pipeline walks them."""

    INIT = "init"
    AUTH_PLATFORM = "auth_platform"
    PARSE_EVENT = "parse_event"
    LOAD_APP = "load_app"
    AUTH_HOSTING = "auth_hosting"
    PREP_CLONE = "prep_clone"
    CLONE = "clone"
    CONFIGURE = "configure"
    UPDATE_METADATA = "update_metadata"
    COMMIT_PUSH = "commit_push"
    NOTIFY_SUCCESS = "notify_success"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.DONE, PipelineState.FAILED)


@dataclass(frozen=True)
class SecretBundle:
    """GitHub App credentials stored per organization."""

    app_id: str
    installation_id: str
    private_key: str


@dataclass
class ExecutionContext:
    """State accumulated during one synchronization run.

    Each pipeline step reads the fields filled by the steps before it and
    writes its own outputs back here.
    """

    api_key: Optional[str] = None
    nrn: Optional[str] = None
    callback_url: Optional[str] = None

    platform_token: Optional[str] = None
    app_id: Optional[str] = None
    app_attributes: Dict[str, str] = field(default_factory=dict)
    github_org: Optional[str] = None
    github_token: Optional[str] = None
    repo_path: Optional[str] = None
    clone_url: Optional[str] = None
    clone_dir: Optional[str] = None
    metadata_timestamp: Optional[str] = None

    state: PipelineState = PipelineState.INIT

    def set_app_attributes(self, attributes: Dict[str, str]):
        self.app_attributes = {self._app_key(key): value for key, value in attributes.items()}

    def app_attribute(self, name: str, default: Optional[str] = None) -> Optional[str]:
        value = self.app_attributes.get(self._app_key(name))
        if value is None or value == "":
            return default
        return value

    @property
    def repository_url(self) -> Optional[str]:
        return self.app_attribute("repository_url")

    @staticmethod
    def _app_key(name: str) -> str:
        key = name.upper()
        if not key.startswith(APP_PREFIX):
            key = f"{APP_PREFIX}{key}"
        return key
