"""Library entry points."""

from typing import Any, Iterable, Optional, Union

from .config import DEFAULT_METHOD, MAX_WORKERS
from .core import BatchOutcome, PortQuery, PortResolver, PortResult, resolve_batch
from .core.strategies import PlatformStrategy


def _options(method_or_options: Union[str, dict, None]) -> dict:
    # resolve(3000, 'udp') is the legacy form of resolve(3000, {'method': 'udp'}).
    # Anything else that is not a dict is taken as a method, so PortQuery.build
    # rejects it as InvalidMethod once the port has been checked.
    if method_or_options is None:
        return {}
    if isinstance(method_or_options, dict):
        return dict(method_or_options)
    return {'method': method_or_options}


def resolve(
    port: Union[int, str],
    method_or_options: Union[str, dict, None] = None,
    strategy: Optional[PlatformStrategy] = None,
) -> PortResult:
    """
    Kill, or with list=True just report, the process bound to a port.

    Args:
        port: Port number, int or numeric string.
        method_or_options: 'tcp'/'udp', or a dict with keys
                           method ('tcp'), list (False), tree (False).
        strategy: Platform strategy override, mainly for tests.

    Returns:
        PortResult; call .to_dict() for the plain result mapping.

    Raises:
        PortClearError subclasses, see portclear.core.errors.
    """
    options = _options(method_or_options)
    query = PortQuery.build(
        port,
        options.get('method', DEFAULT_METHOD),
        list_only=options.get('list', False),
        tree=options.get('tree', False),
    )
    return PortResolver(strategy).resolve(query)


def resolve_many(
    ports: Iterable[Any],
    method_or_options: Union[str, dict, None] = None,
    max_workers: int = MAX_WORKERS,
    strategy: Optional[PlatformStrategy] = None,
) -> list[BatchOutcome]:
    """Resolve several ports concurrently; one outcome per port, in order."""
    options = _options(method_or_options)
    return resolve_batch(
        ports,
        method=options.get('method', DEFAULT_METHOD),
        list_only=options.get('list', False),
        tree=options.get('tree', False),
        max_workers=max_workers,
        resolver=PortResolver(strategy),
    )
