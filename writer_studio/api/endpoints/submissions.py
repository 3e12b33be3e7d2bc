"""
Submission endpoints.

``/submissions`` is what the current dashboard uses; ``/scripts`` is the older
name for the same resource and stays for existing clients. ``/tropes`` and
``/structures`` feed the dropdowns of the submission form.
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from writer_studio.api.dependencies import (
    ServiceContainer,
    get_optional_user,
    get_services,
    resolve_writer_id,
)
from writer_studio.core.lookups import check_trope_number
from writer_studio.core.submission_store import validate_draft
from writer_studio.models.dtos import (
    StructureListResponse,
    Submission,
    SubmissionCreateRequest,
    SubmissionFilter,
    SubmissionType,
    Trope,
    UserProfile,
)

router = APIRouter()
logger = logging.getLogger(__name__)


async def _list_submissions(
    services: ServiceContainer,
    user: Optional[UserProfile],
    writer_id: Optional[int],
    start_date: Optional[date],
    end_date: Optional[date],
    search_title: Optional[str],
) -> List[Submission]:
    writer = resolve_writer_id(user, writer_id)
    criteria = SubmissionFilter(start_date=start_date, end_date=end_date, title_contains=search_title or None)
    return await services.submissions.list(writer, criteria)


async def _create_submission(
    services: ServiceContainer,
    user: Optional[UserProfile],
    request: SubmissionCreateRequest,
) -> Submission:
    writer = resolve_writer_id(user, request.writer_id)
    draft = validate_draft(request)
    if draft.type == SubmissionType.TROPE.value:
        check_trope_number(draft.number, await services.lookups.list_tropes())
    submission = await services.submissions.create(writer, draft)
    logger.info(f"Writer {writer} submitted '{submission.title}' ({submission.type})")
    return submission


@router.get("/submissions", response_model=List[Submission])
async def list_submissions(
    writer_id: Optional[int] = Query(None, description="Writer to list; defaults to the caller's writer"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    search_title: Optional[str] = Query(None, alias="searchTitle"),
    user: Optional[UserProfile] = Depends(get_optional_user),
    services: ServiceContainer = Depends(get_services),
) -> List[Submission]:
    """
    List a writer's submissions, most recent first.

    Args:
        writer_id: Writer whose submissions are listed.
        start_date: Earliest creation date (inclusive).
        end_date: Latest creation date (inclusive).
        search_title: Case-insensitive title substring.

    Returns:
        List[Submission]: Matching submissions.
    """
    return await _list_submissions(services, user, writer_id, start_date, end_date, search_title)


@router.post("/submissions", response_model=Submission, status_code=201)
async def create_submission(
    request: SubmissionCreateRequest,
    user: Optional[UserProfile] = Depends(get_optional_user),
    services: ServiceContainer = Depends(get_services),
) -> Submission:
    """
    Create a submission with status ``pending``.

    Raises:
        BadRequestError: If title, type or document link is missing, or a Trope has
            no number or one that is not in the trope list.
    """
    return await _create_submission(services, user, request)


@router.get("/scripts", response_model=List[Submission])
async def list_scripts(
    writer_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    search_title: Optional[str] = Query(None, alias="searchTitle"),
    user: Optional[UserProfile] = Depends(get_optional_user),
    services: ServiceContainer = Depends(get_services),
) -> List[Submission]:
    return await _list_submissions(services, user, writer_id, start_date, end_date, search_title)


@router.post("/scripts", response_model=Submission, status_code=201)
async def create_script(
    request: SubmissionCreateRequest,
    user: Optional[UserProfile] = Depends(get_optional_user),
    services: ServiceContainer = Depends(get_services),
) -> Submission:
    # Older clients only send title and link.
    if request.type is None:
        request = request.model_copy(update={"type": "Original"})
    return await _create_submission(services, user, request)


@router.get("/tropes", response_model=List[Trope])
async def list_tropes(
    services: ServiceContainer = Depends(get_services),
) -> List[Trope]:
    """Tropes in number order, as offered for Trope submissions."""
    return await services.lookups.list_tropes()


@router.get("/structures", response_model=StructureListResponse)
async def list_structures(
    services: ServiceContainer = Depends(get_services),
) -> StructureListResponse:
    return StructureListResponse(structures=await services.lookups.list_structures())
