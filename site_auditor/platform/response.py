import json
from typing import Any, Dict, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def envelope(data: Optional[Any], message: str, status_code: int) -> Dict[str, Any]:
    """
    The body every endpoint answers with:
    {status_code, status: "success" | "error", message, data}
    """
    return {
        "status_code": status_code,
        "status": "success" if status_code < 400 else "error",
        "message": message,
        "data": jsonable_encoder(data) if data is not None else {},
    }


def api_response(
    *,
    data: Optional[Any] = None,
    message: str = "Operation successful",
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope(data, message, status_code))


def sse_event(event: str, payload: Any) -> Dict[str, str]:
    """One server-sent event for EventSourceResponse, payload JSON-encoded."""
    return {"event": event, "data": json.dumps(jsonable_encoder(payload))}
