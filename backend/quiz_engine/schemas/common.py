from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel


class ErrorOut(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class Envelope(BaseModel):
    """Shape of every HTTP response body."""

    request_id: str
    data: Optional[Any] = None
    error: Optional[ErrorOut] = None


def envelope(request_id: str, data: Any = None, error: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return Envelope(
        request_id=request_id,
        data=data,
        error=ErrorOut(**error) if error else None,
    ).model_dump(mode="json")
