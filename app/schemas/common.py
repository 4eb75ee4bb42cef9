"""
Shared schema base and the response envelope
"""

import enum
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python; both accepted on input"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UserSummary(ApiModel):
    """Account fields embedded in related records"""
    id: int
    username: str
    email: str
    role: str


def envelope(message: Optional[str] = None, **data: Any) -> dict:
    """Build the ``{success, message, data}`` body for a successful response"""
    body = {"success": True}
    if message:
        body["message"] = message
    if data:
        body["data"] = jsonable_encoder({to_camel(key): value for key, value in data.items()}, by_alias=True)
    return body


def error_envelope(message: str, errors: Optional[list] = None, **extra: Any) -> dict:
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    body.update(extra)
    return body


def column_values(model: BaseModel, exclude_none_for: tuple = ()) -> dict:
    """Fields explicitly sent by the client, with enums unwrapped for storage

    Keys in ``exclude_none_for`` are dropped when sent as null, since their
    columns are not nullable.
    """
    values = {}
    for key, value in model.model_dump(exclude_unset=True).items():
        if value is None and key in exclude_none_for:
            continue
        if isinstance(value, enum.Enum):
            value = value.value
        values[key] = value
    return values


def length_error(values: dict, limits: dict) -> Optional[str]:
    """First string in ``values`` outside its ``(min, max)`` bounds in ``limits``"""
    for key, (minimum, maximum) in limits.items():
        value = values.get(key)
        if isinstance(value, str) and not minimum <= len(value) <= maximum:
            if minimum:
                return f"{to_camel(key)} must be between {minimum} and {maximum} characters"
            return f"{to_camel(key)} must be at most {maximum} characters"
    return None
