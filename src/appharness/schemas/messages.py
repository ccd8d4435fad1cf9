"""Typed message holders shared by the RPC proxy and the context facade."""

from pydantic import BaseModel, Field


class StringValue(BaseModel):
    """Single optional string, the response type of the local pseudo-calls."""

    value: str | None = Field(default=None)


class VoidMessage(BaseModel):
    """Empty request or response."""


class User(BaseModel):
    """Identity emulated through the request headers."""

    email: str = Field(description="User email address")
    user_id: str = Field(description="Stable user id")
    admin: bool = Field(default=False, description="Whether the user is an application admin")
    federated_identity: str = Field(default="", description="Federated identity")
