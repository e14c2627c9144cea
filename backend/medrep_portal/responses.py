from typing import Any, Optional
from fastapi.responses import JSONResponse


def envelope(data: Any = None, message: Optional[str] = None, **extra) -> dict:
    """Success body: {success, message?, data?, ...extra}."""
    body: dict = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


def failure(status_code: int, message: str, errors: Optional[list] = None, **extra) -> JSONResponse:
    body: dict = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)
