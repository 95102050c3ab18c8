"""Subprocess execution service for golden-repo-sync."""

import shutil
import subprocess
from typing import Iterable, List, Optional

from goldenrepo.errors import GoldenRepoError


class CommandRunner:
    """Runs external commands with consistent error handling."""

    REDACTED = "***"

    def __init__(self, logger, default_timeout: Optional[float] = None):
        self.logger = logger
        self.default_timeout = default_timeout

    def redact(self, text: str, secrets: Optional[Iterable[str]] = None) -> str:
        for secret in secrets or ():
            if secret:
                text = text.replace(secret, self.REDACTED)
        return text

    def ensure_available(self, commands: Iterable[str]):
        missing = [command for command in commands if shutil.which(command) is None]
        if missing:
            raise GoldenRepoError(
                f"Required command not found: {', '.join(missing)}. Please install it and try again."
            )

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        cwd: Optional[str] = None,
        timeout: Optional[float] = None,
        secrets: Optional[Iterable[str]] = None,
    ) -> subprocess.CompletedProcess:
        secrets = list(secrets or ())
        cmd_str = self.redact(" ".join(cmd), secrets)
        self.logger.debug("Executing: %s", cmd_str)

        effective_timeout = timeout if timeout is not None else self.default_timeout

        try:
            result = subprocess.run(
                cmd,
                text=True,
                capture_output=capture_output,
                cwd=cwd,
                timeout=effective_timeout,
            )
        except FileNotFoundError as exc:
            raise GoldenRepoError(
                f"Required command not found: {cmd[0]}. Please install it and try again."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise GoldenRepoError(
                f"Command timed out after {effective_timeout}s: {cmd_str}"
            ) from exc
        except Exception as exc:
            raise GoldenRepoError(
                f"Failed to execute command: {cmd_str}. {self.redact(str(exc), secrets)}"
            ) from exc

        if capture_output and result.stdout:
            self.logger.debug("Command output: %s", self.redact(result.stdout.strip(), secrets))

        if result.returncode == 0:
            return result

        output = self.combined_output(result, secrets) if capture_output else ""
        message = f"Command failed ({result.returncode}): {cmd_str}"
        if output:
            message = f"{message}\n{output}"

        if check:
            raise GoldenRepoError(message)

        self.logger.warning(message)
        return result

    def combined_output(
        self,
        result: subprocess.CompletedProcess,
        secrets: Optional[Iterable[str]] = None,
    ) -> str:
        parts = [(result.stdout or "").strip(), (result.stderr or "").strip()]
        return self.redact("\n".join(part for part in parts if part), secrets)
