"""Working-copy operations for golden-repo-sync."""

import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from goldenrepo.constants import GIT_USER_EMAIL, GIT_USER_NAME, METADATA_FILENAME, TIMESTAMP_FORMAT
from goldenrepo.errors import GoldenRepoError
from goldenrepo.errors_catalog import actionable_error


def utc_timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now(timezone.utc)).strftime(TIMESTAMP_FORMAT)


class RepositoryService:
    """Clones the golden repository and pushes metadata changes."""

    def __init__(
        self,
        logger,
        console,
        command_runner,
        filesystem_service,
        git_user_name: str = GIT_USER_NAME,
        git_user_email: str = GIT_USER_EMAIL,
    ):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner
        self.filesystem_service = filesystem_service
        self.git_user_name = git_user_name
        self.git_user_email = git_user_email

    @staticmethod
    def clone_dir_name(clone_url: str) -> str:
        name = clone_url.rstrip("/").rsplit("/", 1)[-1]
        if name.endswith(".git"):
            name = name[: -len(".git")]
        if not name or name in (".", ".."):
            raise GoldenRepoError("Could not derive a directory name from clone URL.")
        return name

    def working_copy_path(self, clone_url: Optional[str], workspace: str) -> str:
        if not clone_url:
            raise GoldenRepoError(actionable_error("missing_variable", name="CLONE_URL"))
        return os.path.join(workspace, self.clone_dir_name(clone_url))

    def clone(self, clone_url: Optional[str], clone_dir: str, secrets: Iterable[str] = ()):
        if not clone_url:
            raise GoldenRepoError(actionable_error("missing_variable", name="CLONE_URL"))

        if os.path.exists(clone_dir):
            self.logger.warning("Directory %s already exists, removing it...", clone_dir)
            self.filesystem_service.cleanup_dir(clone_dir)

        self.logger.info("Cloning repository into: %s", clone_dir)
        try:
            self.command_runner.run(
                ["git", "clone", clone_url, clone_dir],
                capture_output=True,
                secrets=secrets,
            )
        except GoldenRepoError:
            self.filesystem_service.cleanup_dir(clone_dir)
            raise

    def configure_identity(self, clone_dir: Optional[str]):
        if not clone_dir:
            raise GoldenRepoError(actionable_error("missing_variable", name="CLONE_DIR"))
        if not os.path.isdir(clone_dir):
            raise GoldenRepoError(f"Repository directory does not exist: {clone_dir}")

        self.command_runner.run(
            ["git", "config", "user.name", self.git_user_name],
            capture_output=True,
            cwd=clone_dir,
        )
        self.command_runner.run(
            ["git", "config", "user.email", self.git_user_email],
            capture_output=True,
            cwd=clone_dir,
        )

    def write_metadata(self, clone_dir: Optional[str], metadata: Dict[str, Any], timestamp: str) -> str:
        if not clone_dir:
            raise GoldenRepoError(actionable_error("missing_variable", name="CLONE_DIR"))

        document = dict(metadata)
        document["timestamp"] = timestamp
        path = os.path.join(clone_dir, METADATA_FILENAME)
        try:
            with open(path, "w", encoding="utf-8") as file_obj:
                json.dump(document, file_obj, indent=2, ensure_ascii=False)
                file_obj.write("\n")
        except (OSError, TypeError, ValueError) as exc:
            raise GoldenRepoError(f"Could not write {METADATA_FILENAME}: {exc}") from exc
        return path

    def commit_and_push(
        self,
        clone_dir: Optional[str],
        timestamp: str,
        secrets: Iterable[str] = (),
    ) -> str:
        """Commits the metadata file and pushes it to the current branch."""
        if not clone_dir:
            raise GoldenRepoError(actionable_error("missing_variable", name="CLONE_DIR"))

        secrets = list(secrets)
        self.command_runner.run(
            ["git", "add", METADATA_FILENAME],
            capture_output=True,
            cwd=clone_dir,
        )

        self.logger.info("Creating commit...")
        self.command_runner.run(
            ["git", "commit", "-m", f"Auto: update metadata at {timestamp} (UTC)"],
            capture_output=True,
            cwd=clone_dir,
        )

        branch_result = self.command_runner.run(
            ["git", "rev-parse", "--abbrev-ref", "HEAD"],
            capture_output=True,
            cwd=clone_dir,
        )
        branch = (branch_result.stdout or "").strip()
        if not branch:
            raise GoldenRepoError("Could not determine the current branch.")

        self.logger.info("Pushing to branch: %s", branch)
        push_result = self.command_runner.run(
            ["git", "push", "--set-upstream", "origin", branch],
            check=False,
            capture_output=True,
            cwd=clone_dir,
            secrets=secrets,
        )
        if push_result.returncode != 0:
            detail = self.command_runner.combined_output(push_result, secrets)
            raise GoldenRepoError(actionable_error("push_failed", branch=branch, detail=detail))
        return branch
