import logging
import os
import signal
from typing import Any, Dict, Mapping, Optional

import click
from rich.logging import RichHandler

from .constants import (
    GIT_USER_EMAIL,
    GIT_USER_NAME,
    GITHUB_API_URL,
    NP_BINARY,
    PLATFORM_API_URL,
    SECRET_ID_PREFIX,
)
from .core import GoldenRepoSync, GoldenRepoError
from .services.config_loader import ConfigLoader
from .services.events import EventService

logger = logging.getLogger("goldenrepo")


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%Y-%m-%d %H:%M:%S]",
    handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
)


def _raise_on_sigterm(signum, _frame):
    # Turns SIGTERM into a normal interpreter exit so cleanup still runs.
    raise SystemExit(128 + signum)


def _configure_logging(verbose: bool, log_file: Optional[str]):
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)


def _load_config(config: Optional[str]) -> Dict[str, Any]:
    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), ConfigLoader.DEFAULT_FILENAME)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        return config_loader.load(resolved_config)
    except GoldenRepoError as exc:
        raise click.ClickException(str(exc)) from exc


def _run_sync(options: Dict[str, Any], environ: Mapping[str, str]) -> int:
    config_values = _load_config(options["config"])

    verbose = bool(_resolve_option(options["verbose"], config_values, "verbose", default=False))
    log_file = _resolve_option(options["log_file"], config_values, "log_file")
    _configure_logging(verbose, log_file)

    http_timeout = _resolve_option(options["http_timeout"], config_values, "http_timeout")

    signal.signal(signal.SIGTERM, _raise_on_sigterm)

    sync = GoldenRepoSync(
        api_key=environ.get("NP_API_KEY"),
        nrn=environ.get("NOTIFICATION_NRN"),
        callback_url=environ.get("NOTIFICATION_CALLBACK_URL"),
        workspace=_resolve_option(options["workspace"], config_values, "workspace"),
        platform_api_url=_resolve_option(
            options["platform_api_url"], config_values, "platform_api_url", default=PLATFORM_API_URL
        ),
        github_api_url=_resolve_option(
            options["github_api_url"], config_values, "github_api_url", default=GITHUB_API_URL
        ),
        secret_id_prefix=_resolve_option(
            options["secret_id_prefix"], config_values, "secret_id_prefix", default=SECRET_ID_PREFIX
        ),
        aws_region=_resolve_option(options["aws_region"], config_values, "aws_region"),
        git_user_name=_resolve_option(
            options["git_user_name"], config_values, "git_user_name", default=GIT_USER_NAME
        ),
        git_user_email=_resolve_option(
            options["git_user_email"], config_values, "git_user_email", default=GIT_USER_EMAIL
        ),
        np_binary=_resolve_option(options["np_binary"], config_values, "np_binary", default=NP_BINARY),
        http_timeout=float(http_timeout) if http_timeout is not None else None,
    )
    return sync.run()


def sync_options(func):
    options = [
        click.option(
            "--config",
            required=False,
            type=click.Path(),
            help="Path to a YAML configuration file. Defaults to .golden-repo.yml if present.",
        ),
        click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging"),
        click.option("--log-file", type=click.Path(), help="Path to log file"),
        click.option(
            "--workspace",
            type=click.Path(file_okay=False),
            help="Directory where the repository is cloned (default: current directory).",
        ),
        click.option("--platform-api-url", required=False, help="Platform API base URL."),
        click.option("--github-api-url", required=False, help="GitHub API base URL."),
        click.option(
            "--secret-id-prefix",
            required=False,
            help="Secrets Manager id prefix; the GitHub organization is appended.",
        ),
        click.option("--aws-region", required=False, envvar="AWS_REGION", help="AWS region for Secrets Manager."),
        click.option("--git-user-name", required=False, help="Commit author name."),
        click.option("--git-user-email", required=False, help="Commit author email."),
        click.option("--np-binary", required=False, help="Platform CLI executable (default: np)."),
        click.option(
            "--http-timeout",
            required=False,
            type=float,
            default=None,
            help="Timeout in seconds for HTTP calls (default: none).",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
def main():
    """Keep golden repositories in sync with platform application metadata."""


@main.command()
@click.argument("action_context", required=False, envvar="NP_ACTION_CONTEXT")
@sync_options
def handle(action_context, **options):
    """Dispatch an entity hook received as NP_ACTION_CONTEXT."""
    logger.info("Starting entity hook handling")
    event_service = EventService()
    try:
        variables = event_service.parse_action_context(action_context)
    except GoldenRepoError as exc:
        raise click.ClickException(str(exc)) from exc

    logger.info("Notification received for entity: %s", variables.get("NOTIFICATION_ENTITY") or "<none>")
    if not event_service.is_application_event(variables):
        logger.info("No hook registered for this entity; nothing to do.")
        return

    environ = dict(os.environ)
    environ.update(variables)
    raise SystemExit(_run_sync(options, environ))


@main.command()
@sync_options
def sync(**options):
    """Update the golden repository using NP_API_KEY and NOTIFICATION_* variables."""
    raise SystemExit(_run_sync(options, os.environ))


if __name__ == "__main__":
    main()
