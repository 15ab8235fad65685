"""
HTTP rendering of the result envelope.

Route handlers call a core operation, get an ActionResult back, and hand
it to `envelope_response`. The body is always the envelope; the status
code follows the error kind so plain HTTP clients can branch on it too.
"""

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..core.errors import ErrorKind
from ..core.results import ActionResult

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_CONTENT,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.PARTIAL_CONSISTENCY: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.UNKNOWN: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def envelope_response(
    result: ActionResult,
    success_status: int = status.HTTP_200_OK,
) -> JSONResponse:
    if result.failed:
        code = STATUS_BY_KIND[result.kind or ErrorKind.UNKNOWN]
    else:
        code = success_status
    return JSONResponse(status_code=code, content=jsonable_encoder(result.to_dict()))
