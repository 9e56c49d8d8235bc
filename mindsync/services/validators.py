"""
MindSync Backend — Business-Rule Validation Helpers
=====================================================

What:  Small checks shared by the services that turn bad input into
       ValidationError (HTTP 400) with the offending field in the context.
Who:   MeditationService, UserService, EmotionService.

Request schemas keep these fields as plain str/int; the rules below apply
whether a service is called from a route or directly.
"""

from enum import Enum
from typing import Any, List, Optional, Type, TypeVar

from mindsync.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def require_choice(value: Any, enum_cls: Type[E], field: str) -> E:
    """Coerce a value into a member of enum_cls or raise ValidationError."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [member.value for member in enum_cls]
        raise ValidationError(
            message=f"Invalid {field} '{value}'. Allowed: {', '.join(allowed)}",
            field=field,
            context={"allowed": allowed},
        )


def require_int_range(
    value: Any,
    field: str,
    minimum: Optional[int] = None,
    maximum: Optional[int] = None,
) -> int:
    """Require an integer (bools rejected) inside the inclusive bounds."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(message=f"{field} must be an integer", field=field)

    if (minimum is not None and value < minimum) or (maximum is not None and value > maximum):
        if maximum is None:
            message = f"{field} must be at least {minimum}"
        elif minimum is None:
            message = f"{field} must be at most {maximum}"
        else:
            message = f"{field} must be between {minimum} and {maximum}"
        raise ValidationError(
            message=message,
            field=field,
            context={"min": minimum, "max": maximum, "value": value},
        )
    return value


def require_text(
    value: Any,
    field: str,
    max_length: int,
    allow_empty: bool = False,
) -> str:
    """Trim a string and enforce its length."""
    if not isinstance(value, str):
        raise ValidationError(message=f"{field} must be a string", field=field)

    cleaned = value.strip()
    if not cleaned and not allow_empty:
        raise ValidationError(message=f"{field} is required", field=field)
    if len(cleaned) > max_length:
        raise ValidationError(
            message=f"{field} cannot be longer than {max_length} characters",
            field=field,
            context={"max_length": max_length, "length": len(cleaned)},
        )
    return cleaned


def require_tags(values: Any, max_tags: int, max_length: int) -> List[str]:
    """Validate a list of short labels; blank entries are rejected."""
    if not isinstance(values, (list, tuple)):
        raise ValidationError(message="tags must be a list of strings", field="tags")
    if len(values) > max_tags:
        raise ValidationError(
            message=f"At most {max_tags} tags are allowed",
            field="tags",
            context={"max_tags": max_tags},
        )
    return [require_text(tag, "tags", max_length) for tag in values]
