"""Explicit field validation.

Each validator returns the cleaned value or raises ``FieldError``. An
``ErrorCollector`` runs validators field by field and raises a single
``ValidationError`` holding every message once all fields have been checked::

    errors = ErrorCollector()
    title = errors.check("title", text, raw_title, label="Title", max_length=100, required=True)
    errors.raise_if_any()
"""

from enum import Enum
from typing import Any, Callable, TypeVar

from protean.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


class FieldError(ValueError):
    pass


def text(
    value: str | None,
    *,
    label: str,
    max_length: int,
    required: bool = False,
) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise FieldError(f"{label} is required")
        return None
    if not isinstance(value, str):
        raise FieldError(f"{label} must be a string")
    value = value.strip()
    if len(value) > max_length:
        raise FieldError(f"{label} cannot exceed {max_length} characters")
    return value


def integer(
    value: Any,
    *,
    label: str,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise FieldError(f"{label} must be a whole number")
    if minimum is not None and value < minimum:
        raise FieldError(f"{label} cannot be negative" if minimum == 0 else f"{label} must be at least {minimum}")
    if maximum is not None and value > maximum:
        raise FieldError(f"{label} must be at most {maximum}")
    return value


def number(value: Any, *, label: str, minimum: float | None = None) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FieldError(f"{label} must be a number")
    if minimum is not None and value < minimum:
        raise FieldError(f"{label} cannot be negative" if minimum == 0 else f"{label} must be at least {minimum}")
    return float(value)


def rating(value: Any) -> int:
    """A star rating between 1 and 5."""
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise FieldError("Rating must be between 1 and 5")
    return value


def choice(value: Any, enum_cls: type[E], *, label: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise FieldError(f"{label} must be one of: {allowed}") from None


class ErrorCollector:
    def __init__(self):
        self.errors: dict[str, list[str]] = {}

    def add(self, field: str, message: str) -> None:
        self.errors.setdefault(field, []).append(message)

    def check(self, field: str, validator: Callable[..., Any], value: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return validator(value, *args, **kwargs)
        except FieldError as exc:
            self.add(field, str(exc))
            return None

    def raise_if_any(self) -> None:
        if self.errors:
            raise ValidationError(self.errors)


def clean_rating(value: Any, review: str | None = None) -> tuple[int, str | None]:
    """Validate a star rating and its optional review text together."""
    errors = ErrorCollector()
    value = errors.check("rating", rating, value)
    review = errors.check("review", text, review, label="Review", max_length=500)
    errors.raise_if_any()
    return value, review
