"""Response models shared by several routers."""

from pydantic import BaseModel


class MessageResponse(BaseModel):
    """Confirmation message returned by delete endpoints."""

    message: str


class ErrorResponse(BaseModel):
    """Body of every domain error response."""

    error: str
    code: str
