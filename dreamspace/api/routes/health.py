"""
Health check endpoint.

Liveness only: is the process running? It does not touch the document
store, so load balancers get a fast answer.
"""

from typing import Any

from fastapi import APIRouter, status
from pydantic import BaseModel

from ... import __version__
from ..dependencies import SettingsDep

router = APIRouter()


class HealthResponse(BaseModel):
    """
    Health check response.

    Standardized format makes it easy for monitoring tools to parse.
    """
    status: str
    version: str
    details: dict[str, Any] = {}


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns 200 if the service is running. Does not check dependencies.",
)
async def health_check(settings: SettingsDep) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        details={"mock_mode": {"document_store": settings.document_store_mock_mode}},
    )
