from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class Identity(BaseModel):
    """Verified identity taken from an ID token. Never persisted directly."""

    subject: str
    name: str = ""
    email: str = ""
    picture: str = ""


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    picture: str
    created_at: datetime
    updated_at: datetime


class AuthCodePayload(BaseModel):
    code: str = Field(..., min_length=1)


class ConsentURLResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., alias="URL")


class TokenResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(..., alias="Token")
