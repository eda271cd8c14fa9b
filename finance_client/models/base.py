"""
Base Models

The backend speaks camelCase JSON; Python code uses snake_case attributes.
Every wire model derives from one of the two bases below so the alias
handling lives in one place.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """
    Base for payloads received from the server.

    Unknown fields are ignored: the server may add fields at any time,
    but a missing or mistyped declared field fails decoding.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class RequestModel(BaseModel):
    """
    Base for request bodies sent to the server.

    Only fields that were explicitly provided are serialized, and blank
    optional strings are dropped, so the server never receives "present
    but empty" optional fields. An explicit None is kept and sent as null.
    Request models are flat; nested models are not supported.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    def to_request_body(self) -> dict[str, Any]:
        fields = type(self).model_fields
        body: dict[str, Any] = {}
        for name, value in self.model_dump(mode="json", exclude_unset=True).items():
            field = fields[name]
            if isinstance(value, str) and not value.strip() and not field.is_required():
                continue
            body[field.serialization_alias or field.alias or name] = value
        return body
