"""
Submission (script) storage.

``SqlSubmissionStore`` reads and writes the ``script`` table;
``InMemorySubmissionStore`` keeps the same contract in a per-instance list and
is what tests and local demos use. Both list most recent first, and a newly
created submission is always the first entry of the next listing.
"""

import itertools
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from writer_studio.core.errors import BadRequestError, ServerError
from writer_studio.models.dtos import (
    Submission,
    SubmissionCreateRequest,
    SubmissionFilter,
    SubmissionStatus,
    SubmissionType,
)
from writer_studio.models.script_orm import ScriptORM

logger = logging.getLogger(__name__)

# Most recent N submissions returned by a listing
LIST_LIMIT = 50

# The submission form pre-fills the Trope number with this placeholder.
NUMBER_PLACEHOLDERS = {"", "choose"}

_STATUS_ALIASES = {
    "under review": SubmissionStatus.UNDER_REVIEW,
    "in review": SubmissionStatus.UNDER_REVIEW,
    "approved": SubmissionStatus.ACCEPTED,
}


def normalize_status(raw: Optional[str]) -> SubmissionStatus:
    """Map stored status strings ("Pending", "Under Review", ...) onto the status enum."""
    key = (raw or "pending").strip().lower()
    if key in _STATUS_ALIASES:
        return _STATUS_ALIASES[key]
    try:
        return SubmissionStatus(key.replace(" ", "_"))
    except ValueError:
        logger.warning(f"Unknown submission status '{raw}', treating as pending")
        return SubmissionStatus.PENDING


def validate_draft(draft: SubmissionCreateRequest) -> SubmissionCreateRequest:
    """
    Check a submission before it is stored.

    Raises:
        BadRequestError: If title, type or document link is missing, the type
            is unknown, or a Trope submission has no number.
    """
    title = (draft.title or "").strip()
    doc_link = (draft.google_doc_link or "").strip()
    if not title or not draft.type or not doc_link:
        raise BadRequestError("Title, type, and Google Doc link are required")
    try:
        submission_type = SubmissionType(draft.type)
    except ValueError:
        raise BadRequestError(f"Unknown submission type: {draft.type}")

    number = (draft.number or "").strip()
    if number.lower() in NUMBER_PLACEHOLDERS:
        number = ""
    if submission_type is SubmissionType.TROPE and not number:
        raise BadRequestError("Trope number is required for Trope submissions")

    return draft.model_copy(update={
        "title": title,
        "type": submission_type.value,
        "google_doc_link": doc_link,
        "number": number or None,
        "structure": (draft.structure or "").strip() or None,
    })


def matches_filter(submission: Submission, criteria: SubmissionFilter) -> bool:
    created = submission.created_at.date()
    if criteria.start_date and created < criteria.start_date:
        return False
    if criteria.end_date and created > criteria.end_date:
        return False
    if criteria.title_contains and criteria.title_contains.casefold() not in submission.title.casefold():
        return False
    return True


class SubmissionStore(Protocol):
    async def list(self, writer_id: int, criteria: Optional[SubmissionFilter] = None) -> List[Submission]:
        ...

    async def create(self, writer_id: int, draft: SubmissionCreateRequest) -> Submission:
        ...


class InMemorySubmissionStore:
    """Submissions kept in memory by this instance only."""

    def __init__(
        self,
        seed: Iterable[Submission] = (),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        # Newest first; create() inserts at the head.
        self._items: List[Submission] = sorted(seed, key=lambda s: s.created_at, reverse=True)
        self._ids = itertools.count(max((s.id for s in self._items), default=0) + 1)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def list(self, writer_id: int, criteria: Optional[SubmissionFilter] = None) -> List[Submission]:
        criteria = criteria or SubmissionFilter()
        return [
            item for item in self._items
            if item.writer_id == writer_id and matches_filter(item, criteria)
        ][:LIST_LIMIT]

    async def create(self, writer_id: int, draft: SubmissionCreateRequest) -> Submission:
        draft = validate_draft(draft)
        submission = Submission(
            id=next(self._ids),
            writer_id=writer_id,
            title=draft.title,
            type=draft.type,
            number=draft.number,
            structure=draft.structure,
            google_doc_link=draft.google_doc_link,
            status=SubmissionStatus.PENDING,
            created_at=self._clock(),
        )
        self._items.insert(0, submission)
        logger.info(f"Stored submission {submission.id} for writer {writer_id}")
        return submission


class SqlSubmissionStore:
    """Submissions in the ``script`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def to_submission(row: ScriptORM) -> Submission:
        return Submission(
            id=row.id,
            writer_id=row.writer_id,
            title=row.title,
            type=row.type,
            number=row.number,
            structure=row.structure,
            google_doc_link=row.google_doc_link,
            status=normalize_status(row.approval_status),
            created_at=row.created_at,
        )

    async def list(self, writer_id: int, criteria: Optional[SubmissionFilter] = None) -> List[Submission]:
        criteria = criteria or SubmissionFilter()
        stmt = select(ScriptORM).where(ScriptORM.writer_id == writer_id)
        if criteria.start_date:
            stmt = stmt.where(func.date(ScriptORM.created_at) >= criteria.start_date)
        if criteria.end_date:
            stmt = stmt.where(func.date(ScriptORM.created_at) <= criteria.end_date)
        if criteria.title_contains:
            stmt = stmt.where(ScriptORM.title.icontains(criteria.title_contains, autoescape=True))
        # id breaks ties between rows created in the same instant
        stmt = stmt.order_by(ScriptORM.created_at.desc(), ScriptORM.id.desc()).limit(LIST_LIMIT)

        try:
            async with self._session_factory() as session:
                rows = (await session.scalars(stmt)).all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing submissions for writer {writer_id}: {e}", exc_info=True)
            raise ServerError("Error fetching scripts") from e
        return [self.to_submission(row) for row in rows]

    async def create(self, writer_id: int, draft: SubmissionCreateRequest) -> Submission:
        draft = validate_draft(draft)
        row = ScriptORM(
            writer_id=writer_id,
            title=draft.title,
            type=draft.type,
            number=draft.number,
            structure=draft.structure,
            google_doc_link=draft.google_doc_link,
            approval_status=SubmissionStatus.PENDING.value,
        )
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(row)
                    await session.flush()
                    await session.refresh(row)
        except SQLAlchemyError as e:
            logger.error(f"Error creating submission for writer {writer_id}: {e}", exc_info=True)
            raise ServerError("Error submitting script") from e
        logger.info(f"Stored submission {row.id} for writer {writer_id}")
        return self.to_submission(row)

