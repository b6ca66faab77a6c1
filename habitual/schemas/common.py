"""
Shared schema primitives used across the API.
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


class ErrorResponse(BaseModel):
    """Standard `{code, message, details}` envelope for all 4xx/5xx responses."""
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


NOT_FOUND = {404: {"model": ErrorResponse, "description": "Habit does not exist."}}
INVALID = {422: {"model": ErrorResponse, "description": "Empty name or unknown frequency."}}
STORAGE = {500: {"model": ErrorResponse, "description": "Changes could not be saved."}}
