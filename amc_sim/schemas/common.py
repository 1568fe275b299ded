"""Response envelope shared by every API route."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class ErrorBody(BaseModel):
    success: bool = False
    error: str
    details: Any = None


def ok(data: Any = None) -> dict[str, Any]:
    """Wrap ``data`` in the ``{success, data}`` envelope."""

    return {"success": True, "data": data}
