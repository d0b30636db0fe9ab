"""CLI entrypoint for gh-envclone."""
import sys
import argparse
import logging
import threading

from gh_envclone import __version__
from gh_envclone.environments.domains.capabilities import check_capabilities
from gh_envclone.environments.domains.config_loader import load_config
from gh_envclone.environments.domains.errors import (
    CapabilityUnavailable,
    RemoteFetchError,
    SecretsFileError,
    TemplateWriteError,
)
from gh_envclone.environments.domains.github_client import GitHubEnvironmentClient
from gh_envclone.environments.domains.models import CloneOptions, CopyReport, ItemStatus, SecretsMode
from gh_envclone.environments.workflows.copy_secrets import copy_secrets
from gh_envclone.environments.workflows.copy_variables import copy_variables

from .validators import (
    resolve_secrets_mode,
    validate_environment,
    validate_repo,
    validate_secrets_file,
    validate_template_path,
)

VERSION = __version__

# Configure logging to stderr for warnings and diagnostics
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)

SEPARATOR = "=========================================="


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with code 1 on usage errors."""

    def error(self, message):
        self.print_usage(sys.stderr)
        print(f"Error: {message}", file=sys.stderr)
        sys.exit(1)


def _banner(title: str) -> None:
    print()
    print(SEPARATOR)
    print(title)
    print(SEPARATOR)


def print_report(report: CopyReport) -> None:
    """Print each item's outcome followed by a summary line."""
    singular = report.kind[:-1]
    for outcome in report.outcomes:
        name = outcome.name
        if outcome.status is ItemStatus.CREATED:
            print(f"✓ Added {singular} {name} to {report.target_env} environment.")
        elif outcome.status is ItemStatus.UPLOADED:
            print(f"✓ Added {singular} {name} to {report.target_env} environment ({outcome.reason}).")
        elif outcome.status is ItemStatus.SKIPPED:
            print(f"Skipping {singular} '{name}': {outcome.reason}.")
        else:
            print(f"✗ Error: Failed to add {singular} {name}. {outcome.reason}")

    summary = f"{report.succeeded} added, {report.skipped} skipped, {report.failed} failed"
    if report.cancelled:
        summary += " (cancelled before all items were processed)"
    print(f"\n{report.kind.capitalize()}: {summary}")


def _print_secret_names(report: CopyReport) -> None:
    print(f"Secret names in {report.source_env}:")
    for name in report.listed:
        print(f"  - {name}")
    print()
    print("Note: Secret values cannot be read from GitHub. "
          "Use --with-secrets or --secrets-file to clone them.")


def run_variables(client, options: CloneOptions, cancel: threading.Event) -> None:
    """Run the variables pipeline, reporting a listing failure without aborting."""
    _banner(f"Cloning Variables from {options.source_env} to {options.target_env}")
    try:
        report = copy_variables(client, options, cancel=cancel)
    except RemoteFetchError as e:
        print(f"✗ Error: {e}")
        return
    print_report(report)


def run_secrets(client, options: CloneOptions, capabilities, cancel: threading.Event) -> int:
    """
    Run the secrets pipeline.

    Returns:
        Exit code contribution (1 for secrets file or template errors, else 0)
    """
    _banner(f"Cloning Secrets from {options.source_env} to {options.target_env}")

    def _announce(names):
        if names:
            print(f"Found {len(names)} secret(s) in {options.source_env} environment.\n")
        else:
            print(f"No secrets found in {options.source_env} environment.")

    try:
        report = copy_secrets(client, options, capabilities, cancel=cancel, on_listed=_announce)
    except CapabilityUnavailable as e:
        print(f"✗ Error: {e}")
        print("  Secrets were not cloned. Set them manually in the GitHub UI.")
        return 0
    except RemoteFetchError as e:
        print(f"✗ Error: {e}")
        return 0
    except (SecretsFileError, TemplateWriteError) as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        return 1

    if report.cancelled and not report.outcomes:
        print("Cancelled before secrets were processed.")
        return 0
    if not report.listed:
        return 0

    if options.secrets_mode is SecretsMode.LIST_ONLY:
        _print_secret_names(report)
    elif options.secrets_mode is SecretsMode.GENERATE_TEMPLATE:
        print(f"✓ Template file created successfully: {report.template_path}")
        print("  Please fill in the secret values and use --secrets-file to clone them.")
    else:
        print_report(report)
    return 0


def cmd_clone(args) -> int:
    """Clone variables (and optionally secrets) between environments."""
    validate_environment(args.source_env, "Source")
    validate_environment(args.target_env, "Target")
    validate_repo(args.repo)
    mode = resolve_secrets_mode(args)
    if mode is SecretsMode.FROM_FILE:
        validate_secrets_file(args.secrets_file)
    elif mode is SecretsMode.GENERATE_TEMPLATE:
        validate_template_path(args.generate_secrets_template)

    settings = load_config(args.config)
    options = CloneOptions(
        source_env=args.source_env,
        target_env=args.target_env,
        repo=args.repo,
        secrets_mode=mode,
        secrets_file=args.secrets_file,
        template_file=args.generate_secrets_template,
        max_workers=args.max_workers or settings.max_workers,
    )

    capabilities = check_capabilities()
    if not capabilities.can_encrypt:
        logger.warning("Optional dependency not found (needed for cloning secrets):")
        logger.warning(f"  - {capabilities.reason}")

    client = GitHubEnvironmentClient.from_settings(options.repo, settings)

    cancel = threading.Event()
    timer = None
    if settings.deadline_seconds:
        timer = threading.Timer(settings.deadline_seconds, cancel.set)
        timer.daemon = True
        timer.start()

    exit_code = 0
    try:
        run_variables(client, options, cancel)
        if mode is not SecretsMode.NONE:
            exit_code = run_secrets(client, options, capabilities, cancel)
    except KeyboardInterrupt:
        cancel.set()
        raise
    finally:
        if timer is not None:
            timer.cancel()

    _banner("Cloning completed!")
    return exit_code


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="gh-envclone",
        description="Clone GitHub Actions environment variables and secrets between environments",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  gh-envclone integration production owner/repo
  gh-envclone integration production owner/repo --with-secrets
  gh-envclone integration production owner/repo --secrets-file secrets.json
  gh-envclone integration production owner/repo --list-secrets-only
  gh-envclone integration production owner/repo --generate-secrets-template secrets-template.json
  gh-envclone integration production owner/repo --clone-secrets-empty

Secrets File Format (JSON):
  {
    "SECRET_NAME_1": "secret_value_1",
    "SECRET_NAME_2": "secret_value_2"
  }

Exit codes:
  0 - Completed (individual items may still have failed, see output)
  1 - Missing dependency, usage error, unreadable secrets file or config error

Environment variables:
  GH_TOKEN, GITHUB_TOKEN - GitHub token (falls back to config, then 'gh auth token')
  GITHUB_API_URL - API base URL (overrides config file)
  GH_ENVCLONE_CONFIG - Config file path

Configuration:
  Default location: ~/.config/gh-envclone/config.yml
        """
    )
    parser.add_argument("source_env", help="Source environment name")
    parser.add_argument("target_env", help="Target environment name")
    parser.add_argument("repo", help="Repository in owner/repo form")
    parser.add_argument(
        "--with-secrets",
        action="store_true",
        help="Clone secrets (will prompt for values interactively)"
    )
    parser.add_argument(
        "--secrets-file",
        metavar="FILE",
        help="Path to JSON file containing secret values"
    )
    parser.add_argument(
        "--list-secrets-only",
        action="store_true",
        help="Only list secret names without cloning them"
    )
    parser.add_argument(
        "--generate-secrets-template",
        metavar="FILE",
        help="Generate JSON template file with secret names (empty values)"
    )
    parser.add_argument(
        "--clone-secrets-empty",
        action="store_true",
        help="Clone secrets with empty values"
    )
    parser.add_argument(
        "--config",
        metavar="FILE",
        help="Path to YAML config file (default: ~/.config/gh-envclone/config.yml)"
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        metavar="N",
        help="Number of variables/secrets processed concurrently (default from config, 4)"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Show progress logs (-vv for debug output)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"gh-envclone {VERSION}"
    )
    return parser


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Completed, possibly with per-item failures
        1 - Missing dependency, usage error, unreadable secrets file, config error
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.max_workers is not None and args.max_workers < 1:
        parser.error("--max-workers must be at least 1")

    if args.verbose >= 2:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.verbose == 1:
        logging.getLogger().setLevel(logging.INFO)

    try:
        sys.exit(cmd_clone(args))
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
