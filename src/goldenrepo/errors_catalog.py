"""Actionable error catalog for golden-repo-sync."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "missing_variable": {
        "what": "Required value is not defined: {name}",
        "next": "Export `{name}` (or pass it through the action context) and retry.",
    },
    "platform_unreachable": {
        "what": "Could not reach the platform API at {url}: {detail}",
        "next": "Check network access and `platform_api_url`, then retry.",
    },
    "invalid_platform_token": {
        "what": "Platform token response did not contain a usable access token.",
        "next": "Verify that `NP_API_KEY` is valid and not revoked.",
    },
    "unparseable_nrn": {
        "what": "Could not extract an application id from NRN: {nrn}",
        "next": "The NRN must contain an `application=<id>` segment.",
    },
    "secret_unavailable": {
        "what": "Could not read secret `{secret_id}`: {detail}",
        "next": "Check AWS credentials and that the organization secret exists.",
    },
    "incomplete_secret": {
        "what": "Secret `{secret_id}` is missing fields: {fields}",
        "next": "The secret must define `app_id`, `installation_id` and `private_key`.",
    },
    "github_unreachable": {
        "what": "Could not reach the GitHub API: {detail}",
        "next": "Check network access and `github_api_url`, then retry.",
    },
    "invalid_github_token": {
        "what": "GitHub did not return an installation token (HTTP {status}).",
        "next": "Check that the GitHub App is installed on the organization.",
    },
    "push_failed": {
        "what": "Git push failed on branch ({branch}). Detail: {detail}",
        "next": "Check branch protection rules and the App's write permission.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
