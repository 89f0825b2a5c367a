"""Response envelopes shared by the read API routes."""

from typing import Any

from fastapi.responses import JSONResponse


def success_response(data: Any) -> dict:
    return {"code": 200, "data": data}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"code": status_code, "message": message})
