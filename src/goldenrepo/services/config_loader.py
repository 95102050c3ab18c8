"""Configuration loader for golden-repo-sync."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from goldenrepo.errors import GoldenRepoError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    DEFAULT_FILENAME = ".golden-repo.yml"

    SUPPORTED_KEYS = {
        "platform_api_url",
        "github_api_url",
        "secret_id_prefix",
        "aws_region",
        "git_user_name",
        "git_user_email",
        "workspace",
        "np_binary",
        "http_timeout",
        "verbose",
        "log_file",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise GoldenRepoError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise GoldenRepoError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise GoldenRepoError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise GoldenRepoError(f"Unknown configuration keys: {unknown_list}")

        return parsed
