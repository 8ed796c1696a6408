"""Port resolution entry point."""

from typing import Optional

from ..utils.logging_config import get_logger
from .errors import PortClearError
from .models import PortQuery, PortResult
from .strategies import PlatformStrategy, get_strategy

logger = get_logger('resolver')


class PortResolver:
    """Resolves a PortQuery with the platform strategy picked at construction."""

    def __init__(self, strategy: Optional[PlatformStrategy] = None):
        self.strategy = strategy or get_strategy()
        logger.debug(f"PortResolver initialized ({type(self.strategy).__name__}, {self.strategy.platform})")

    def resolve(self, query: PortQuery) -> PortResult:
        """
        Inspect or terminate the owners of query.port.

        Raises:
            NoProcessFoundError: nothing holds the port.
            PermissionDeniedError: the kill was refused by the OS.
            TerminationFailedError: the kill command failed otherwise.
        """
        logger.debug(
            f"Resolving port {query.port}/{query.transport.value} "
            f"(mode={query.mode.value}, tree={query.include_tree})"
        )
        try:
            if query.is_inspect:
                return self.strategy.inspect(query)
            return self.strategy.terminate(query)
        except PortClearError as e:
            logger.info(f"Port {query.port}: {e} ({e.kind})")
            raise
