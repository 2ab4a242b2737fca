"""
Form models.

Every HTML form is a pydantic model. Each field carries its processing steps
as ``Annotated`` metadata: one ``BeforeValidator`` normalizes the raw submitted
value, then the ``AfterValidator`` steps check and escape it in the order they
are listed. Messages shown to the user are raised as ``PydanticCustomError`` so
they reach the page unchanged. pydantic validates every field before reporting,
so all errors of a submission come back together.
"""

from datetime import date
from typing import Annotated, Any, Dict, List, Mapping, get_origin

from markupsafe import escape as markup_escape
from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    Field,
    ValidationError,
    WrapValidator,
)
from pydantic_core import PydanticCustomError

# characters markupsafe leaves alone but stored text must not carry raw
_EXTRA_ENTITIES = {"/": "&#x2F;", "\\": "&#x5C;", "`": "&#96;"}


class FieldError(BaseModel):
    field: str
    msg: str


class FormResult(BaseModel):
    values: Dict[str, Any] = Field(default_factory=dict)
    errors: List[FieldError] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, field_name: str, message: str) -> None:
        self.errors.append(FieldError(field=field_name, msg=message))


def _scalar(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def trim(value: Any) -> str:
    value = _scalar(value)
    if value is None:
        return ""
    return str(value).strip()


def as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def escape(value: Any) -> str:
    """Replace ``& < > " ' / \\ ` `` with HTML entities."""
    text = str(markup_escape("" if value is None else value))
    for char, entity in _EXTRA_ENTITIES.items():
        text = text.replace(char, entity)
    return text


def required(message: str, min_length: int = 1) -> AfterValidator:
    def check(value: str) -> str:
        if len(value) < min_length:
            raise PydanticCustomError("required", message)
        return value

    return AfterValidator(check)


def alphanumeric(message: str) -> AfterValidator:
    def check(value: str) -> str:
        if value and not (value.isascii() and value.isalnum()):
            raise PydanticCustomError("alphanumeric", message)
        return value

    return AfterValidator(check)


def default(fallback: Any) -> AfterValidator:
    return AfterValidator(lambda value: value or fallback)


def reference(message: str, missing: str | None = None) -> BeforeValidator:
    """Submitted reference to a stored record: a positive id, blank is absent."""

    def parse(value: Any) -> int | None:
        text = trim(value)
        if not text:
            if missing:
                raise PydanticCustomError("required", missing)
            return None
        if not text.isdigit() or int(text) <= 0:
            raise PydanticCustomError("reference", message)
        return int(text)

    return BeforeValidator(parse)


def optional_date(message: str = "Invalid date.") -> WrapValidator:
    def parse(value: Any, handler) -> date | None:
        if isinstance(value, date):
            return value
        text = trim(value)
        if not text:
            return None
        try:
            return handler(text)
        except ValidationError:
            raise PydanticCustomError("date", message) from None

    return WrapValidator(parse)


Trimmed = Annotated[str, BeforeValidator(trim)]
Escaped = AfterValidator(escape)
OptionalDate = Annotated[date | None, optional_date()]


class FormModel(BaseModel):
    """Base for form models; ``validate_form`` never raises."""

    @classmethod
    def validate_form(cls, data: Mapping[str, Any]) -> FormResult:
        raw = {name: data.get(name) for name in cls.model_fields}
        try:
            form = cls.model_validate(raw)
        except ValidationError as exc:
            errors = [
                FieldError(field=str(err["loc"][0]), msg=err["msg"])
                for err in exc.errors()
            ]
            return FormResult(values=cls.echo(raw), errors=errors)
        return FormResult(values=form.model_dump())

    @classmethod
    def echo(cls, raw: Mapping[str, Any]) -> Dict[str, Any]:
        """Submitted values, trimmed and escaped, for showing the form again."""
        values: Dict[str, Any] = {}
        for name, info in cls.model_fields.items():
            if get_origin(info.annotation) is list:
                values[name] = [escape(trim(v)) for v in as_list(raw.get(name))]
            else:
                values[name] = escape(trim(raw.get(name)))
        return values
