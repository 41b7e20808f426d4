"""Typed form validation with a discriminated result.

Forms are pydantic models. ``validate_form`` never raises: it returns either
``Valid`` holding the parsed record or ``Invalid`` holding the field
violations in declaration order, so callers can surface the first one.
"""
from typing import Any, Generic, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import AnyUrl, BaseModel, TypeAdapter, ValidationError, validate_email
from pydantic_core import PydanticCustomError

from community.core.exceptions import FieldViolation, FormValidationError

FormT = TypeVar("FormT", bound=BaseModel)


class Valid(Generic[FormT]):
    ok = True

    def __init__(self, record: FormT):
        self.record = record


class Invalid:
    ok = False

    def __init__(self, violations: List[FieldViolation]):
        self.violations = violations

    @property
    def first(self) -> FieldViolation:
        return self.violations[0]

    def raise_for(self) -> None:
        raise FormValidationError(self.violations)


def _violations_from(error: ValidationError, schema: Type[BaseModel]) -> List[FieldViolation]:
    order = list(schema.model_fields)
    violations = []
    for err in error.errors():
        field = str(err["loc"][0]) if err.get("loc") else "__root__"
        violations.append(FieldViolation(field, err["msg"]))
    # pydantic reports in field order already; keep it stable for unknown fields
    violations.sort(key=lambda v: order.index(v.field) if v.field in order else len(order))
    return violations


def validate_form(schema: Type[FormT], data: Mapping[str, Any]) -> Union[Valid[FormT], Invalid]:
    try:
        return Valid(schema.model_validate(dict(data)))
    except ValidationError as e:
        return Invalid(_violations_from(e, schema))


def require_valid(schema: Type[FormT], data: Mapping[str, Any]) -> FormT:
    """Validate or raise FormValidationError carrying every violation."""
    result = validate_form(schema, data)
    if not result.ok:
        result.raise_for()
    return result.record


# Field rules shared by the forms. Each raises PydanticCustomError so the
# message reaches the client verbatim.

_url_adapter = TypeAdapter(AnyUrl)


def bounded_text(value: Any, *, min_length: int, max_length: int, required: str, too_long: str) -> str:
    text = "" if value is None else str(value).strip()
    if len(text) < min_length:
        raise PydanticCustomError("required", required)
    if len(text) > max_length:
        raise PydanticCustomError("too_long", too_long)
    return text


def email_address(value: Any, *, max_length: int = 255, message: str = "Invalid email") -> str:
    text = "" if value is None else str(value).strip()
    if len(text) > max_length:
        raise PydanticCustomError("too_long", message)
    try:
        _, normalized = validate_email(text)
    except PydanticCustomError:
        raise PydanticCustomError("email", message)
    return normalized


def optional_url(value: Any, *, message: str = "Invalid URL") -> Optional[str]:
    text = "" if value is None else str(value).strip()
    if not text:
        return None
    try:
        _url_adapter.validate_python(text)
    except ValidationError:
        raise PydanticCustomError("url", message)
    return text
