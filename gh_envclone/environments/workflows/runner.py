"""Bounded worker pool for per-item processing."""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from ..domains.models import CopyReport, ItemStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")
Result = Tuple[ItemStatus, Optional[str]]

CANCELLED = "cancelled"


def run_items(
    items: Sequence[Tuple[str, T]],
    process: Callable[[T], Result],
    report: CopyReport,
    max_workers: int = 1,
    cancel: Optional[threading.Event] = None,
) -> CopyReport:
    """
    Process named items on a bounded thread pool and record each outcome.

    Outcomes are recorded in the order of items, so every item appears in
    the report exactly once. Items that have not started when cancel is set
    are recorded as skipped.
    """
    if cancel is None:
        cancel = threading.Event()

    def _run(item: T) -> Result:
        if cancel.is_set():
            return ItemStatus.SKIPPED, CANCELLED
        return process(item)

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = [(name, executor.submit(_run, item)) for name, item in items]
        try:
            results: List[Tuple[str, Result]] = [(name, future.result()) for name, future in futures]
        except KeyboardInterrupt:
            cancel.set()
            raise

    for name, (status, reason) in results:
        report.record(name, status, reason)
        if reason == CANCELLED:
            report.cancelled = True
        logger.debug(f"{report.kind} {name}: {status.value}")

    return report
