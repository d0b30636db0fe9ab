"""Workflow for copying environment variables."""
import logging
import threading
from typing import Optional

from ..domains.errors import RemoteWriteError
from ..domains.github_client import GitHubEnvironmentClient
from ..domains.models import CloneOptions, CopyReport, EnvironmentVariable, ItemStatus, is_valid_name
from .runner import run_items

logger = logging.getLogger(__name__)

SKIP_EMPTY = "empty value"
SKIP_INVALID_NAME = "invalid name"


def copy_variables(
    client: GitHubEnvironmentClient,
    options: CloneOptions,
    cancel: Optional[threading.Event] = None,
) -> CopyReport:
    """
    Copy every variable from the source environment to the target environment.

    Variables with empty values or names that are not valid identifiers are
    skipped. A failure to create one variable does not stop the others.

    Raises:
        RemoteFetchError: If the source variables cannot be listed
    """
    report = CopyReport(kind="variables", source_env=options.source_env, target_env=options.target_env)
    variables = client.list_variables(options.source_env)
    report.listed = [v.name for v in variables]

    def _copy(variable: EnvironmentVariable):
        logger.info(f"Processing variable: name='{variable.name}'")
        if not variable.value:
            return ItemStatus.SKIPPED, SKIP_EMPTY
        if not is_valid_name(variable.name):
            return ItemStatus.SKIPPED, SKIP_INVALID_NAME
        try:
            client.create_variable(options.target_env, variable.name, variable.value)
        except RemoteWriteError as e:
            logger.debug(f"Create failed for {variable.name}: {e}")
            return ItemStatus.FAILED, str(e)
        return ItemStatus.CREATED, None

    return run_items(
        [(v.name, v) for v in variables],
        _copy,
        report,
        max_workers=options.max_workers,
        cancel=cancel,
    )
