from __future__ import annotations

from enum import Enum
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from recallrai.errors import ErrorKind, RecallrAIError

ModelT = TypeVar("ModelT", bound=BaseModel)
EnumT = TypeVar("EnumT", bound=Enum)


class APIModel(BaseModel):
    """Base model for payloads exchanged with the RecallrAI API."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())


class Snapshot(APIModel):
    """Immutable server state held by a handle; replaced, never patched."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=(), frozen=True)


class Page(APIModel):
    """Pagination fields shared by listing responses."""

    total: int = 0
    has_more: bool = False


def unwrap(data: Any, key: str) -> Any:
    """Return ``data[key]`` when the API wraps the object, otherwise ``data``."""

    if isinstance(data, dict) and isinstance(data.get(key), dict):
        return data[key]
    return data


def parse_payload(model: type[ModelT], data: Any, key: Optional[str] = None) -> ModelT:
    """Validate a successful response body into ``model``."""

    if key is not None:
        data = unwrap(data, key)
    if not isinstance(data, dict):
        raise RecallrAIError(ErrorKind.UNKNOWN, "RecallrAI returned an invalid JSON payload.")
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise RecallrAIError(
            ErrorKind.UNKNOWN, f"Unexpected {model.__name__} payload from RecallrAI."
        ) from exc


def validate_input(model: type[ModelT], data: Any) -> ModelT:
    """Validate caller-supplied arguments into ``model``."""

    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        messages = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'value'}: {error['msg']}"
            for error in exc.errors()
        )
        raise RecallrAIError(
            ErrorKind.VALIDATION, f"Invalid {model.__name__}: {messages}"
        ) from exc


def coerce_enum(enum_cls: type[EnumT], value: Any) -> EnumT:
    """Convert a caller-supplied value into ``enum_cls``."""

    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(str(item.value) for item in enum_cls)
        raise RecallrAIError(
            ErrorKind.VALIDATION,
            f"Invalid {enum_cls.__name__} {value!r}; expected one of: {allowed}",
        ) from exc
