from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def api_response(
    *,
    data: Optional[dict] = None,
    message: str = "Operation successful",
    status_code: int = status.HTTP_200_OK,
    headers: Optional[dict] = None,
) -> JSONResponse:
    """
    Single source of truth for ALL API responses.
    The body is always a flat object with a "message" key; any extra fields
    in `data` sit next to it (e.g. {"message": ..., "token": ..., "role": ...}).
    """
    content: dict[str, Any] = {"message": message}
    if data:
        content.update(jsonable_encoder(data))

    return JSONResponse(status_code=status_code, content=content, headers=headers)
