"""Resolving several ports in one run."""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, Optional

from ..config import MAX_WORKERS
from ..utils.logging_config import get_logger
from .errors import PortClearError, UnexpectedError
from .models import BatchOutcome, PortQuery
from .resolver import PortResolver

logger = get_logger('batch')


def resolve_one(
    resolver: PortResolver,
    port: Any,
    method: str,
    list_only: bool,
    tree: bool,
) -> BatchOutcome:
    """Resolve one requested port, turning any failure into an outcome."""
    try:
        query = PortQuery.build(port, method, list_only=list_only, tree=tree)
        return BatchOutcome(requested=port, result=resolver.resolve(query))
    except PortClearError as e:
        return BatchOutcome(requested=port, error=e)
    except Exception as e:
        logger.exception(f"Unexpected error while resolving port {port}")
        return BatchOutcome(requested=port, error=UnexpectedError(port, e))


def resolve_batch(
    ports: Iterable[Any],
    method: str = "tcp",
    list_only: bool = False,
    tree: bool = False,
    max_workers: int = MAX_WORKERS,
    resolver: Optional[PortResolver] = None,
) -> list[BatchOutcome]:
    """
    Resolve every port independently, one worker thread per port.

    Results come back in request order. A failure on one port never stops
    the others.
    """
    ports = list(ports)
    if not ports:
        return []
    resolver = resolver or PortResolver()

    workers = max(1, min(max_workers, len(ports)))
    logger.debug(f"Resolving {len(ports)} port(s) with {workers} worker(s)")
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(resolve_one, resolver, port, method, list_only, tree)
            for port in ports
        ]
        outcomes = [future.result() for future in futures]

    failed = sum(1 for o in outcomes if not o.success)
    logger.info(f"Batch done: {len(outcomes) - failed} succeeded, {failed} failed")
    return outcomes
