"""
Dream book endpoints.

The dreams document (dreams plus weekly goal templates) is a single
per-user document, written whole.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ...core.errors import ValidationError
from ...core.records import DreamsDocumentRecord
from ...core.results import action_boundary
from ...infrastructure.documents.repositories import DreamsRepository
from ..dependencies import DreamsRepositoryDep, OwnerUser
from ..envelope import envelope_response

logger = logging.getLogger(__name__)

router = APIRouter()


@action_boundary("Failed to load dreams")
async def load_dreams(repository: DreamsRepository, user_id: str) -> dict:
    record = await repository.get(user_id) or DreamsDocumentRecord()
    return record.model_dump(mode="json")


@action_boundary("Failed to save dreams")
async def save_dreams(
    repository: DreamsRepository,
    user_id: str,
    record: DreamsDocumentRecord,
) -> dict:
    ids = [d.id for d in record.dreams]
    if len(ids) != len(set(ids)):
        raise ValidationError("Dream ids must be unique")

    template_ids = [t.id for t in record.weekly_goal_templates]
    if len(template_ids) != len(set(template_ids)):
        raise ValidationError("Weekly goal template ids must be unique")

    unknown = sorted(
        {t.dream_id for t in record.weekly_goal_templates if t.dream_id} - set(ids)
    )
    if unknown:
        raise ValidationError(f"Templates reference unknown dreams: {', '.join(unknown)}")

    saved = await repository.save(user_id, record)
    logger.info(
        "Dreams saved",
        extra={"user_id": user_id, "dreams": len(saved.dreams), "templates": len(template_ids)},
    )
    return saved.model_dump(mode="json")


@router.get("/{user_id}", summary="Get the dream book")
async def get_dreams(
    user_id: str,
    owner: OwnerUser,
    repository: DreamsRepositoryDep,
) -> JSONResponse:
    return envelope_response(await load_dreams(repository, user_id))


@router.put("/{user_id}", summary="Replace the dream book")
async def put_dreams(
    user_id: str,
    record: DreamsDocumentRecord,
    owner: OwnerUser,
    repository: DreamsRepositoryDep,
) -> JSONResponse:
    return envelope_response(await save_dreams(repository, user_id, record))
