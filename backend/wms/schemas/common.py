from typing import Any, List, Optional
from pydantic import BaseModel


class Message(BaseModel):
    message: str
    id: Optional[int] = None


class ErrorResponse(BaseModel):
    """Body of every error response"""
    detail: str
    code: str
    errors: Optional[List[Any]] = None
