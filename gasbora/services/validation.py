from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Mapping, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from ..schemas.listing import EDITABLE_FIELDS, ListingInput

T = TypeVar("T")


@dataclass
class ValidationResult(Generic[T]):
    """Tagged result: either ``value`` is set or ``errors`` maps field -> message."""

    value: Optional[T] = None
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def field_errors(exc: ValidationError, messages: Mapping[str, str] | None = None) -> dict[str, str]:
    """First message per field; ``messages`` overrides pydantic's wording."""
    errors: dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ("__root__",)
        name = str(loc[0])
        if name in errors:
            continue
        errors[name] = (messages or {}).get(name) or err.get("msg") or "Invalid value"
    return errors


def validate_model(model: type[BaseModel], raw: Mapping[str, Any],
                   messages: Mapping[str, str] | None = None) -> ValidationResult:
    try:
        return ValidationResult(value=model.model_validate(dict(raw)))
    except ValidationError as e:
        return ValidationResult(errors=field_errors(e, messages))


def validate_listing(raw: Mapping[str, Any]) -> ValidationResult[ListingInput]:
    """
    Normalize seller input into a ``ListingInput``.

    Missing keys are treated as blank so every field reports its own
    message rather than a generic "field required".
    """
    data = {name: raw.get(name) for name in EDITABLE_FIELDS}
    return validate_model(ListingInput, data)
