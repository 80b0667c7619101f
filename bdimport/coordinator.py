"""
Import coordination across sources.

Adapters run concurrently on a thread pool; they share no state. One
source's fatal failure never aborts the others: it becomes a ``SourceError``
entry next to whatever the remaining sources produced. Results keep the
order in which sources were requested, not completion order.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from bdimport.browser_import import AdapterOutput, SourceAdapter, build_adapter
from bdimport.config import ImporterConfig
from bdimport.constants import DEFAULT_MAX_WORKERS
from bdimport.errors import BrowserImportError, ImportCancelled
from bdimport.models import ImportResult, SourceError

logger = logging.getLogger(__name__)

Outcome = Union[AdapterOutput, SourceError]


class ImportCoordinator:
    """Fan out to source adapters and aggregate their results."""

    def __init__(self, adapters: Sequence[SourceAdapter], max_workers: int = DEFAULT_MAX_WORKERS):
        self.adapters = list(adapters)
        self.max_workers = max(1, max_workers)

    def run(self, cancel_event: Optional[threading.Event] = None) -> ImportResult:
        """
        Import every source.

        Args:
            cancel_event: Set it to cancel; running sources stop at their next
                page/row/folder boundary and unstarted sources are skipped.
                Sources that already finished keep their results.

        Returns:
            Union of all decoded records plus one error per failed source
        """
        cancel_event = cancel_event or threading.Event()
        result = ImportResult()
        if not self.adapters:
            return result

        outcomes: List[Optional[Outcome]] = [None] * len(self.adapters)
        workers = min(self.max_workers, len(self.adapters))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="bdimport") as executor:
            futures = {
                executor.submit(self._run_adapter, adapter, cancel_event): index
                for index, adapter in enumerate(self.adapters)
            }
            try:
                for future in as_completed(futures):
                    outcomes[futures[future]] = future.result()
            except KeyboardInterrupt:
                cancel_event.set()
                raise

        for outcome in outcomes:
            if isinstance(outcome, SourceError):
                result.errors.append(outcome)
            elif outcome is not None:
                result.bookmarks.extend(outcome.bookmarks)
                result.cookies.extend(outcome.cookies)

        result.cancelled = cancel_event.is_set()
        logger.info(
            f"Import finished: {len(result.bookmarks)} bookmarks, {len(result.cookies)} cookies, "
            f"{len(result.errors)} failed sources"
        )
        return result

    def _run_adapter(self, adapter: SourceAdapter, cancel_event: threading.Event) -> Outcome:
        path = str(adapter.path)
        if cancel_event.is_set():
            return SourceError.from_exception(
                adapter.kind, ImportCancelled("Cancelled before start"), path=path
            )

        try:
            output = adapter.run(should_stop=cancel_event.is_set)
        except BrowserImportError as e:
            logger.warning(f"Import from {adapter.kind} failed: {e}")
            return SourceError.from_exception(adapter.kind, e, path=path)
        except Exception as e:
            # Anything unexpected is still contained to its source
            logger.error(f"Unexpected error importing {adapter.kind} from {path}: {e}", exc_info=True)
            return SourceError.from_exception(adapter.kind, e, path=path)

        logger.info(
            f"Imported {len(output.bookmarks)} bookmarks and {len(output.cookies)} cookies "
            f"from {adapter.kind}"
        )
        return output


def import_sources(requests: Iterable[Tuple[str, Union[str, Path]]],
                   config: Optional[ImporterConfig] = None,
                   cancel_event: Optional[threading.Event] = None) -> ImportResult:
    """
    Import from ``(kind, path)`` requests.

    Unknown kinds are reported as errors rather than raised.

    Args:
        requests: Source kinds (see SOURCE_KINDS) paired with input paths
        config: Importer configuration (defaults if omitted)
        cancel_event: Optional event used to cancel the run

    Returns:
        ImportResult for all requests
    """
    config = config or ImporterConfig()
    adapters: List[SourceAdapter] = []
    build_errors: List[SourceError] = []

    for kind, path in requests:
        try:
            adapters.append(build_adapter(kind, path, config))
        except BrowserImportError as e:
            logger.warning(f"Skipping source {kind}: {e}")
            build_errors.append(SourceError.from_exception(kind, e, path=str(path)))

    result = ImportCoordinator(adapters, max_workers=config.max_workers).run(cancel_event)
    result.errors = build_errors + result.errors
    return result
