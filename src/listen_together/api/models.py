"""Pydantic models for listen-together request bodies."""

from pydantic import BaseModel, ConfigDict, Field


class SessionRequest(BaseModel):
    """Body of the session lifecycle endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    action: str
    user_id: str = Field(alias="userId")
    session_id: str | None = Field(default=None, alias="sessionId")
    user_name: str | None = Field(default=None, alias="userName")
    user_avatar: str | None = Field(default=None, alias="userAvatar")


class SyncPushRequest(BaseModel):
    """Body of the host playback push endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    user_id: str = Field(alias="userId")
    action: str
    payload: dict[str, object] | None = None
