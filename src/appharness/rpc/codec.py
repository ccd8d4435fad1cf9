"""Wire encoding for RPC payloads."""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel


class Codec(Protocol):
    """Marshal/unmarshal pair for typed messages.

    unmarshal fills the caller-supplied holder in place.
    """

    content_type: str

    def marshal(self, message: BaseModel) -> bytes: ...

    def unmarshal(self, data: bytes, holder: BaseModel) -> None: ...


class PydanticJsonCodec:
    """JSON encoding of pydantic models."""

    content_type = "application/json"

    def marshal(self, message: BaseModel) -> bytes:
        return message.model_dump_json().encode("utf-8")

    def unmarshal(self, data: bytes, holder: BaseModel) -> None:
        parsed = type(holder).model_validate_json(data)
        for name in type(holder).model_fields:
            setattr(holder, name, getattr(parsed, name))
