"""
Trope and structure lists for the submission form.

The form offers tropes by number; a Trope submission must name one of them.
"""

import logging
from typing import Iterable, List, Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from writer_studio.core.errors import BadRequestError, ServerError
from writer_studio.models.dtos import Structure, Trope
from writer_studio.models.lookup_orm import StructureORM, TropeORM

logger = logging.getLogger(__name__)


class LookupStore(Protocol):
    async def list_tropes(self) -> List[Trope]:
        ...

    async def list_structures(self) -> List[Structure]:
        ...


def check_trope_number(number: Optional[str], tropes: Sequence[Trope]) -> None:
    """
    Reject a trope number that is not in the catalogue.

    An empty catalogue accepts any number, so a fresh install can take
    submissions before the list is loaded.

    Raises:
        BadRequestError: If ``number`` names no known trope.
    """
    if not tropes:
        return
    if number not in {str(trope.number) for trope in tropes}:
        raise BadRequestError(f"Unknown trope number: {number}")


class InMemoryLookupStore:
    def __init__(self, tropes: Iterable[Trope] = (), structures: Iterable[Structure] = ()):
        self._tropes = sorted(tropes, key=lambda t: t.number)
        self._structures = sorted(structures, key=lambda s: s.name.casefold())

    async def list_tropes(self) -> List[Trope]:
        return list(self._tropes)

    async def list_structures(self) -> List[Structure]:
        return list(self._structures)


class SqlLookupStore:
    """Lists read from the ``trope`` and ``structure`` tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def _all(self, stmt, what: str) -> list:
        try:
            async with self._session_factory() as session:
                return list((await session.scalars(stmt)).all())
        except SQLAlchemyError as e:
            logger.error(f"Error fetching {what}: {e}", exc_info=True)
            raise ServerError(f"Error fetching {what}") from e

    async def list_tropes(self) -> List[Trope]:
        rows = await self._all(select(TropeORM).order_by(TropeORM.number), "tropes")
        return [Trope.model_validate(row) for row in rows]

    async def list_structures(self) -> List[Structure]:
        rows = await self._all(select(StructureORM).order_by(StructureORM.name), "structures")
        return [Structure(id=row.structure_id, name=row.name) for row in rows]
