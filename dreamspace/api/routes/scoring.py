"""Yearly scorecard endpoints."""

from fastapi import APIRouter, Path
from fastapi.responses import JSONResponse

from ...core.errors import ValidationError
from ...core.records import ScoringRecord
from ...core.results import action_boundary
from ...infrastructure.documents.repositories import ScoringRepository
from ..dependencies import OwnerUser, ScoringRepositoryDep
from ..envelope import envelope_response

router = APIRouter()


def _payload(record: ScoringRecord) -> dict:
    return {**record.model_dump(mode="json"), "total_score": record.total_score}


@action_boundary("Failed to load scoring")
async def load_scoring(repository: ScoringRepository, user_id: str, year: int) -> dict:
    record = await repository.get(user_id, year) or ScoringRecord(year=year)
    return _payload(record)


@action_boundary("Failed to save scoring")
async def save_scoring(
    repository: ScoringRepository,
    user_id: str,
    year: int,
    record: ScoringRecord,
) -> dict:
    if record.year != year:
        raise ValidationError(f"Scoring year {record.year} does not match URL ({year})")
    outside = [e.id for e in record.entries if e.entry_date.year != year]
    if outside:
        raise ValidationError(f"Entries fall outside {year}: {', '.join(outside)}")
    return _payload(await repository.save(user_id, record))


@router.get("/{user_id}/{year}", summary="Get a year's scorecard")
async def get_scoring(
    user_id: str,
    owner: OwnerUser,
    repository: ScoringRepositoryDep,
    year: int = Path(ge=2000, le=2100),
) -> JSONResponse:
    return envelope_response(await load_scoring(repository, user_id, year))


@router.put("/{user_id}/{year}", summary="Replace a year's scorecard")
async def put_scoring(
    user_id: str,
    record: ScoringRecord,
    owner: OwnerUser,
    repository: ScoringRepositoryDep,
    year: int = Path(ge=2000, le=2100),
) -> JSONResponse:
    return envelope_response(await save_scoring(repository, user_id, year, record))
