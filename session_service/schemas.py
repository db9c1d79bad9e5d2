from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SessionCreate(BaseModel):
    """
    Body of POST /sessions. ``userId`` may be any JSON value; when it is
    omitted the session stores null.
    """
    model_config = ConfigDict(populate_by_name=True)

    user_id: Any = Field(default=None, alias="userId")


class MessageResponse(BaseModel):
    message: str


class SessionRead(BaseModel):
    message: str
    session: Any = None
