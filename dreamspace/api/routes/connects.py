"""Dream connect endpoints (one document per connect)."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ...core.errors import ValidationError
from ...core.records import ConnectRecord
from ...core.results import action_boundary
from ...infrastructure.documents.repositories import ConnectsRepository
from ..dependencies import ConnectsRepositoryDep, OwnerUser
from ..envelope import envelope_response

logger = logging.getLogger(__name__)

router = APIRouter()


@action_boundary("Failed to load connects")
async def load_connects(repository: ConnectsRepository, user_id: str) -> list[dict]:
    return [c.model_dump(mode="json") for c in await repository.list(user_id)]


@action_boundary("Failed to save connect")
async def save_connect(
    repository: ConnectsRepository,
    user_id: str,
    connect_id: str,
    connect: ConnectRecord,
) -> dict:
    if connect.id != connect_id:
        raise ValidationError(f"Connect id {connect.id} does not match URL ({connect_id})")
    if connect.with_whom_id == user_id:
        raise ValidationError("You cannot connect with yourself")
    saved = await repository.upsert(user_id, connect)
    return saved.model_dump(mode="json")


@action_boundary("Failed to delete connect")
async def delete_connect(repository: ConnectsRepository, user_id: str, connect_id: str) -> dict:
    await repository.delete(user_id, connect_id)
    return {"id": connect_id}


@router.get("/{user_id}", summary="List connects")
async def get_connects(
    user_id: str,
    owner: OwnerUser,
    repository: ConnectsRepositoryDep,
) -> JSONResponse:
    return envelope_response(await load_connects(repository, user_id))


@router.put("/{user_id}/{connect_id}", summary="Create or update a connect")
async def put_connect(
    user_id: str,
    connect_id: str,
    connect: ConnectRecord,
    owner: OwnerUser,
    repository: ConnectsRepositoryDep,
) -> JSONResponse:
    return envelope_response(await save_connect(repository, user_id, connect_id, connect))


@router.delete("/{user_id}/{connect_id}", summary="Delete a connect")
async def remove_connect(
    user_id: str,
    connect_id: str,
    owner: OwnerUser,
    repository: ConnectsRepositoryDep,
) -> JSONResponse:
    return envelope_response(await delete_connect(repository, user_id, connect_id))
