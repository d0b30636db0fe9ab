"""Input validation for CLI arguments."""
import re
import sys
from pathlib import Path

from gh_envclone.environments.domains.models import SecretsMode

REPO_PATTERN = re.compile(r'^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$')


def validate_repo(repo: str) -> None:
    """
    Validate repository is in owner/repo form.

    Raises:
        SystemExit with code 1 if validation fails
    """
    if not REPO_PATTERN.match(repo or ""):
        print(f"Error: Invalid repository '{repo}'", file=sys.stderr)
        print("\nExpected format: owner/repo", file=sys.stderr)
        print("  ✓ octocat/hello-world", file=sys.stderr)
        print("  ✗ hello-world (missing owner)", file=sys.stderr)
        print("  ✗ https://github.com/octocat/hello-world (URL, not owner/repo)", file=sys.stderr)
        sys.exit(1)


def validate_environment(name: str, role: str) -> None:
    """Validate an environment name is not blank."""
    if not name or name.strip() == "":
        print(f"Error: {role} environment cannot be empty", file=sys.stderr)
        sys.exit(1)


def resolve_secrets_mode(args) -> SecretsMode:
    """
    Determine the secrets mode from parsed options.

    --with-secrets alone prompts interactively; it may be combined with
    one other secrets option, but two different modes conflict.

    Raises:
        SystemExit with code 1 if more than one mode is requested
    """
    requested = []
    if args.secrets_file is not None:
        requested.append(("--secrets-file", SecretsMode.FROM_FILE))
    if args.list_secrets_only:
        requested.append(("--list-secrets-only", SecretsMode.LIST_ONLY))
    if args.generate_secrets_template is not None:
        requested.append(("--generate-secrets-template", SecretsMode.GENERATE_TEMPLATE))
    if args.clone_secrets_empty:
        requested.append(("--clone-secrets-empty", SecretsMode.EMPTY_VALUES))

    if len(requested) > 1:
        flags = ", ".join(flag for flag, _ in requested)
        print(f"Error: Conflicting secrets options: {flags}", file=sys.stderr)
        print("\nUse at most one secrets mode per run.", file=sys.stderr)
        sys.exit(1)

    if requested:
        return requested[0][1]
    if args.with_secrets:
        return SecretsMode.INTERACTIVE
    return SecretsMode.NONE


def validate_secrets_file(path: str) -> None:
    """
    Validate the secrets file exists and is readable.

    Raises:
        SystemExit with code 1 if the file is missing or unreadable
    """
    secrets_path = Path(path)
    if not secrets_path.is_file():
        print(f"Error: Secrets file '{path}' not found.", file=sys.stderr)
        sys.exit(1)
    try:
        with open(secrets_path, 'rb'):
            pass
    except OSError as e:
        print(f"Error: Secrets file '{path}' is not readable: {e}", file=sys.stderr)
        sys.exit(1)


def validate_template_path(path: str) -> None:
    """
    Validate a template file path was given.

    Raises:
        SystemExit with code 1 if the path is blank
    """
    if not path or path.strip() == "":
        print("Error: Template file path is required with --generate-secrets-template", file=sys.stderr)
        sys.exit(1)
