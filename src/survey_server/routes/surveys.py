"""Survey endpoints — completion status, question catalog, submission.

    GET  /surveys                         list available catalogs
    GET  /surveys/{instance_key}/status     {"is_complete": bool}
    GET  /surveys/{instance_key}/questions  {"questions": [...]}
    POST /surveys/{instance_key}/responses  {"success": bool, "message": str}

Status and submission are scoped to the ``X-Respondent-ID`` caller.  The
question catalog is the same for every respondent and needs no identity.

Submission is idempotent: replaying the exact same answers after a lost
response is acknowledged again, while a different answer set for an
already completed instance is rejected with 409.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from survey_db.repository import SubmissionRepository, payload_digest
from survey_engine.models.payload import SubmissionAck, SubmissionPayload
from survey_server.catalog_store import CatalogStore
from survey_server.dependencies import get_catalogs, get_db, get_respondent_id
from survey_server.validation import canonical_answers

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/surveys", tags=["surveys"])

_repo = SubmissionRepository()

SAVED_MESSAGE = "Responses saved successfully!"
ALREADY_SAVED_MESSAGE = "Responses already recorded."
CONFLICT_MESSAGE = "This survey has already been submitted."


def _rejected(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=SubmissionAck(success=False, message=message).model_dump(),
    )


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("")
def list_surveys(
    catalogs: CatalogStore = Depends(get_catalogs),
) -> list[dict]:
    """Return the id, title and question count of every catalog."""
    return [
        {
            "id": catalog.id,
            "title": catalog.title,
            "question_count": len(catalog.questions),
        }
        for catalog in catalogs.catalogs
    ]


@router.get("/{instance_key}/status")
async def get_status(
    instance_key: str,
    respondent_id: str = Depends(get_respondent_id),
    catalogs: CatalogStore = Depends(get_catalogs),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Whether the caller has already completed ``instance_key``."""
    catalogs.get(instance_key)
    complete = await _repo.exists(db, respondent_id, instance_key)
    return {"is_complete": complete}


@router.get("/{instance_key}/questions")
def get_questions(
    instance_key: str,
    catalogs: CatalogStore = Depends(get_catalogs),
) -> dict:
    """The question catalog for ``instance_key``; may be empty."""
    questions = catalogs.questions_for(instance_key)
    return {"questions": [q.model_dump(mode="json") for q in questions]}


@router.post("/{instance_key}/responses")
async def submit_responses(
    instance_key: str,
    payload: SubmissionPayload,
    respondent_id: str = Depends(get_respondent_id),
    catalogs: CatalogStore = Depends(get_catalogs),
    db: AsyncSession = Depends(get_db),
):
    """Record the caller's answers for ``instance_key`` exactly once."""
    if payload.survey_instance_key != instance_key:
        return _rejected(400, "Payload survey_instance_key does not match the URL")
    if payload.identity != respondent_id:
        return _rejected(403, "Payload identity does not match X-Respondent-ID")

    questions = catalogs.questions_for(instance_key)
    try:
        answers = canonical_answers(questions, payload.answers)
    except ValueError as exc:
        logger.info("Rejected submission for %s: %s", instance_key, exc)
        return _rejected(400, str(exc))

    digest = payload_digest(answers)
    existing = await _repo.get(db, respondent_id, instance_key)
    if existing is None:
        try:
            await _repo.create(
                db,
                respondent_id=respondent_id,
                instance_key=instance_key,
                answers=answers,
            )
        except IntegrityError:
            # Lost a race with a concurrent submission of the same instance
            await db.rollback()
            existing = await _repo.get(db, respondent_id, instance_key)
            if existing is None:
                raise
        else:
            logger.info("Recorded %s for respondent %s", instance_key, respondent_id)
            return SubmissionAck(success=True, message=SAVED_MESSAGE).model_dump()

    if existing.payload_digest == digest:
        logger.info("Duplicate submission of %s acknowledged", instance_key)
        return SubmissionAck(success=True, message=ALREADY_SAVED_MESSAGE).model_dump()

    logger.warning(
        "Conflicting resubmission of %s by %s", instance_key, respondent_id,
    )
    return _rejected(409, CONFLICT_MESSAGE)
