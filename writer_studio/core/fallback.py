"""
Ordered fallback resolution.

Every chain of interchangeable backends (metrics series, content catalogues)
is resolved by ``resolve_first``: the backends are tried in order and the
first one that answers with a structurally valid result wins, even when that
result is empty. Failures are recorded, not raised.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from writer_studio.core.errors import SourceUnavailableError
from writer_studio.models.dtos import DataSource

logger = logging.getLogger(__name__)

S = TypeVar("S")
T = TypeVar("T")


@dataclass
class Attempt:
    backend: str
    error: str
    transport: bool


@dataclass
class Resolution(Generic[T]):
    """Outcome of a fallback chain."""

    value: Optional[T]
    backend: Optional[str]
    source: DataSource
    attempts: List[Attempt] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.backend is not None

    @property
    def all_unreachable(self) -> bool:
        """True when every backend was tried and each failed at the transport level."""
        return not self.resolved and bool(self.attempts) and all(a.transport for a in self.attempts)


def backend_name(backend) -> str:
    return getattr(backend, "name", type(backend).__name__)


async def resolve_first(
    backends: Sequence[S],
    call: Callable[[S], Awaitable[T]],
    what: str,
) -> Resolution[T]:
    """
    Try ``call`` on each backend in order and keep the first result.

    Args:
        backends: Backends in priority order. The first is the live source,
            every later one is a fallback.
        call: Coroutine function performing the request against one backend.
        what: Short description of the request, used in log messages.

    Returns:
        Resolution: The winning value with its backend and source tag, or an
        empty resolution tagged ``none`` carrying every failed attempt.
    """
    attempts: List[Attempt] = []
    for position, backend in enumerate(backends):
        name = backend_name(backend)
        try:
            value = await call(backend)
        except SourceUnavailableError as e:
            attempts.append(Attempt(backend=name, error=str(e), transport=True))
            logger.warning(f"{what}: backend '{name}' unreachable: {e}")
            continue
        except Exception as e:
            attempts.append(Attempt(backend=name, error=str(e), transport=False))
            logger.warning(f"{what}: backend '{name}' failed: {e}", exc_info=True)
            continue

        source = DataSource.LIVE if position == 0 else DataSource.FALLBACK
        if source is DataSource.FALLBACK:
            logger.warning(
                f"{what}: served by fallback backend '{name}'",
                extra={"data_source": source.value, "backend": name},
            )
        return Resolution(value=value, backend=name, source=source, attempts=attempts)

    if backends:
        logger.error(f"{what}: all {len(backends)} backends failed")
    return Resolution(value=None, backend=None, source=DataSource.NONE, attempts=attempts)
