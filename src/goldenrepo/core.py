import logging
import os
from typing import Dict, Optional

import requests
from rich.console import Console

from .constants import (
    GIT_USER_EMAIL,
    GIT_USER_NAME,
    GITHUB_API_URL,
    NP_BINARY,
    PLATFORM_API_URL,
    SECRET_ID_PREFIX,
)
from .errors import GoldenRepoError
from .models import ExecutionContext, PipelineState
from .services.command_runner import CommandRunner
from .services.events import EventService
from .services.filesystem import FileSystemService
from .services.github import GitHubService
from .services.notification import NotificationService
from .services.platform import PlatformService
from .services.repository import RepositoryService, utc_timestamp
from .services.secrets import SecretStoreService

console = Console()
logger = logging.getLogger("goldenrepo")


class GoldenRepoSync:
    """Pushes fresh application metadata into the application's golden repository."""

    STEP_FAILURES: Dict[PipelineState, str] = {
        PipelineState.INIT: "Environment validation failed",
        PipelineState.AUTH_PLATFORM: "Failed to generate the platform token",
        PipelineState.PARSE_EVENT: "Failed to extract the application id from NOTIFICATION_NRN",
        PipelineState.LOAD_APP: "Failed to load application variables from the platform",
        PipelineState.AUTH_HOSTING: "Failed to generate the GitHub installation token",
        PipelineState.PREP_CLONE: "Failed to prepare clone URLs",
        PipelineState.CLONE: "Failed to clone the repository from GitHub",
        PipelineState.CONFIGURE: "Failed to configure Git credentials",
        PipelineState.UPDATE_METADATA: "Failed to update metadata.json",
        PipelineState.COMMIT_PUSH: "Failed to commit and push changes",
        PipelineState.NOTIFY_SUCCESS: "Failed to report the final status",
    }

    def __init__(
        self,
        api_key: Optional[str],
        nrn: Optional[str],
        callback_url: Optional[str],
        workspace: Optional[str] = None,
        platform_api_url: str = PLATFORM_API_URL,
        github_api_url: str = GITHUB_API_URL,
        secret_id_prefix: str = SECRET_ID_PREFIX,
        aws_region: Optional[str] = None,
        git_user_name: str = GIT_USER_NAME,
        git_user_email: str = GIT_USER_EMAIL,
        np_binary: str = NP_BINARY,
        http_timeout: Optional[float] = None,
        secrets_client=None,
    ):
        self.context = ExecutionContext(api_key=api_key, nrn=nrn, callback_url=callback_url)
        self.workspace = workspace or os.getcwd()
        self.np_binary = np_binary
        self.failed_state: Optional[PipelineState] = None

        self.filesystem_service = FileSystemService(logger=logger, console=console)
        self.command_runner = CommandRunner(logger=logger)
        self.event_service = EventService()
        self.notification_service = NotificationService(
            logger=logger,
            requests_module=requests,
            timeout=http_timeout,
        )
        self.platform_service = PlatformService(
            logger=logger,
            command_runner=self.command_runner,
            requests_module=requests,
            api_url=platform_api_url,
            np_binary=np_binary,
            timeout=http_timeout,
        )
        self.secret_store_service = SecretStoreService(
            logger=logger,
            client=secrets_client,
            prefix=secret_id_prefix,
            region_name=aws_region,
        )
        self.github_service = GitHubService(
            logger=logger,
            filesystem_service=self.filesystem_service,
            requests_module=requests,
            api_url=github_api_url,
            timeout=http_timeout,
        )
        self.repository_service = RepositoryService(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
            filesystem_service=self.filesystem_service,
            git_user_name=git_user_name,
            git_user_email=git_user_email,
        )

    def _run_step(self, state: PipelineState, callback, *args, **kwargs):
        self.context.state = state
        logger.debug("Entering state: %s", state.value)
        return callback(*args, **kwargs)

    def _secrets(self):
        return [value for value in (self.context.github_token, self.context.platform_token) if value]

    def validate_environment(self):
        """Arms the notifier with the callback URL."""
        self.notification_service.configure(callback_url=self.context.callback_url or "")

    def generate_platform_token(self):
        """Reads ``api_key``; writes ``platform_token``."""
        self.context.platform_token = self.platform_service.generate_token(self.context.api_key)
        self.notification_service.configure(token=self.context.platform_token)
        logger.info("Platform token generated.")
        self.notification_service.try_notify("info", "Platform token generated successfully")

    def extract_app_id(self):
        """Reads ``nrn``; writes ``app_id``."""
        self.context.app_id = self.event_service.extract_app_id(self.context.nrn)
        logger.info("Application id extracted: %s", self.context.app_id)
        self.notification_service.try_notify(
            "info",
            f"Application id extracted successfully: {self.context.app_id}",
        )

    def load_app_variables(self):
        """Reads ``app_id``; writes ``app_attributes``."""
        self.command_runner.ensure_available([self.np_binary])
        attributes = self.platform_service.read_application(self.context.app_id)
        self.context.set_app_attributes(attributes)
        logger.info("Loaded %s application variables with prefix APP_", len(attributes))
        self.notification_service.try_notify("info", "Application variables loaded successfully")

    def generate_github_token(self):
        """Reads ``app_attributes``; writes ``github_org`` and ``github_token``."""
        self.context.github_org = self.github_service.extract_organization(
            self.context.repository_url
        )
        logger.info("GitHub organization extracted: %s", self.context.github_org)
        self.notification_service.try_notify(
            "info",
            f"GitHub organization extracted: {self.context.github_org}",
        )

        credentials = self.secret_store_service.get_app_credentials(self.context.github_org)
        self.context.github_token = self.github_service.generate_installation_token(credentials)
        logger.info("GitHub installation token generated.")
        self.notification_service.try_notify("info", "GitHub token generated successfully")

    def prepare_clone_urls(self):
        """Reads ``app_attributes`` and ``github_token``; writes ``clone_url`` and ``repo_path``."""
        self.context.clone_url, self.context.repo_path = self.github_service.build_clone_urls(
            self.context.repository_url,
            self.context.github_token,
        )
        logger.info("Repository path: %s", self.context.repo_path)
        self.notification_service.try_notify("info", "Clone URLs prepared successfully")

    def clone_repository(self):
        """Reads ``clone_url``; writes ``clone_dir``."""
        self.command_runner.ensure_available(["git"])
        clone_dir = self.repository_service.working_copy_path(self.context.clone_url, self.workspace)
        self.context.clone_dir = clone_dir
        self.notification_service.try_notify(
            "info",
            f"Cloning repository into directory {os.path.basename(clone_dir)}",
        )
        self.repository_service.clone(self.context.clone_url, clone_dir, secrets=self._secrets())
        console.print(f"[green]Repository cloned into {clone_dir}.[/green]")
        self.notification_service.try_notify("info", "Repository cloned successfully")

    def configure_git_identity(self):
        """Reads ``clone_dir``."""
        self.repository_service.configure_identity(self.context.clone_dir)
        logger.info("Git identity configured (user: %s)", self.repository_service.git_user_name)
        self.notification_service.try_notify("info", "Git credentials configured successfully")

    def update_metadata(self):
        """Reads ``app_id`` and ``clone_dir``; writes ``metadata_timestamp``.

        The metadata is read again from the platform on purpose: the attributes
        loaded earlier are flattened and may be stale.
        """
        if not self.context.app_id:
            raise GoldenRepoError("APP_ID is not defined.")
        if not self.context.clone_dir:
            raise GoldenRepoError("CLONE_DIR is not defined.")

        logger.info("Reading metadata from the platform...")
        metadata = self.platform_service.read_metadata(self.context.app_id)
        timestamp = utc_timestamp()
        self.repository_service.write_metadata(self.context.clone_dir, metadata, timestamp)
        self.context.metadata_timestamp = timestamp
        logger.info("Metadata updated with timestamp: %s", timestamp)
        self.notification_service.try_notify(
            "info",
            f"Metadata updated successfully with timestamp: {timestamp}",
        )

    def commit_and_push(self):
        """Reads ``clone_dir`` and ``metadata_timestamp``."""
        if not self.context.metadata_timestamp:
            logger.warning("Metadata timestamp is not defined, generating a new one")
            self.notification_service.try_notify("warn", "Metadata timestamp missing, generating a new one")
            self.context.metadata_timestamp = utc_timestamp()

        timestamp = self.context.metadata_timestamp
        self.notification_service.try_notify("info", f"Committing and pushing: timestamp {timestamp}")
        branch = self.repository_service.commit_and_push(
            self.context.clone_dir,
            timestamp,
            secrets=self._secrets(),
        )
        console.print(f"[green]Changes pushed to branch {branch}.[/green]")
        self.notification_service.try_notify("info", "Changes committed and pushed successfully")

    def report_success(self):
        self.notification_service.notify("info", "Process completed successfully")
        self.notification_service.send_final_status("success", "success")

    def handle_failure(self, message: str):
        console.print(f"[bold red]Error:[/bold red] {message}")
        logger.error(message)
        self.failed_state = self.context.state
        self.context.state = PipelineState.FAILED

        if self.failed_state == PipelineState.NOTIFY_SUCCESS:
            # The sync itself completed; a failed report must not turn into a "failed" status.
            return

        if not self.notification_service.available:
            logger.error(
                "The failure could not be reported: notification credentials are not available. "
                "The exit code is the only failure signal for this run."
            )
            return

        try:
            self.notification_service.notify("error", f"Script error: {message}")
        except GoldenRepoError as exc:
            logger.error("Could not send failure notification: %s", exc)
        try:
            self.notification_service.send_final_status("failed", "failed")
        except GoldenRepoError as exc:
            logger.error("Could not send failed status: %s", exc)

    def cleanup(self):
        if self.context.clone_dir and os.path.exists(self.context.clone_dir):
            logger.info("Cleaning up working copy: %s", self.context.clone_dir)
            self.filesystem_service.cleanup_dir(self.context.clone_dir)

    def _failure_message(self, detail: str) -> str:
        prefix = self.STEP_FAILURES.get(self.context.state)
        return f"{prefix}: {detail}" if prefix else detail

    def run(self) -> int:
        exit_code = 1

        try:
            logger.info("=== Starting golden repository update ===")
            self._run_step(PipelineState.INIT, self.validate_environment)

            console.print("[blue]Phase 1: Platform authentication[/blue]")
            self._run_step(PipelineState.AUTH_PLATFORM, self.generate_platform_token)

            console.print("[blue]Phase 2: Application information[/blue]")
            self._run_step(PipelineState.PARSE_EVENT, self.extract_app_id)
            self._run_step(PipelineState.LOAD_APP, self.load_app_variables)

            console.print("[blue]Phase 3: GitHub configuration[/blue]")
            self._run_step(PipelineState.AUTH_HOSTING, self.generate_github_token)
            self._run_step(PipelineState.PREP_CLONE, self.prepare_clone_urls)

            console.print("[blue]Phase 4: Repository operations[/blue]")
            self._run_step(PipelineState.CLONE, self.clone_repository)
            self._run_step(PipelineState.CONFIGURE, self.configure_git_identity)
            self._run_step(PipelineState.UPDATE_METADATA, self.update_metadata)
            self._run_step(PipelineState.COMMIT_PUSH, self.commit_and_push)

            console.print("[blue]Phase 5: Completion[/blue]")
            self._run_step(PipelineState.NOTIFY_SUCCESS, self.report_success)

            self.context.state = PipelineState.DONE
            console.print("[bold green]Golden repository updated successfully.[/bold green]")
            logger.info("=== Process completed successfully ===")
            exit_code = 0
            return exit_code

        except KeyboardInterrupt:
            self.handle_failure(self._failure_message("Operation cancelled by user."))
            return exit_code
        except SystemExit as exc:
            self.handle_failure(self._failure_message(f"Process terminated (exit code {exc.code})."))
            raise
        except GoldenRepoError as exc:
            self.handle_failure(self._failure_message(str(exc)))
            return exit_code
        except Exception as exc:
            logger.exception("Unexpected error")
            self.handle_failure(self._failure_message(f"Unexpected error: {exc}"))
            return exit_code
        finally:
            if not self.context.state.is_terminal:
                self.failed_state = self.context.state
                self.context.state = PipelineState.FAILED
            self.cleanup()
