"""Declarative query parameter validation.

Each endpoint declares a ``QuerySpec``: a static table of ``FieldSpec`` entries
with a type, an optional default and constraints. Each table is checked for
internal consistency once, when it is built, and compiled into a pydantic model
that performs the coercion.

``validate_query`` never raises for bad input. It returns ``Ok(params)`` or an
``Err(ValidationFailure)`` listing every failing field, so a client can fix
all problems in one round trip. Unknown parameters are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Literal, Mapping

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    create_model,
)

from cosmic_index.core.result import Err, Ok, Result
from cosmic_index.utils.text_normalizer import normalize_query_value


class FieldKind(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ENUM = "enum"


class QuerySpecError(ValueError):
    """Raised at startup when a QuerySpec is internally inconsistent."""


@dataclass(frozen=True)
class FieldSpec:
    """One accepted query parameter.

    Attributes:
        name: Query parameter name as sent by clients.
        kind: Target type the raw string is coerced to.
        default: Value applied when the parameter is absent.
        minimum: Inclusive lower bound (INTEGER, NUMBER).
        maximum: Inclusive upper bound (INTEGER, NUMBER).
        exclusive_minimum: Exclusive lower bound (NUMBER).
        max_length: Maximum length after normalization (STRING).
        choices: Allowed values (ENUM).
        case: Case folding applied before checks ("lower" or "upper").
    """

    name: str
    kind: FieldKind
    default: Any = None
    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: float | None = None
    max_length: int | None = None
    choices: tuple[str, ...] = ()
    case: Literal["lower", "upper"] | None = None


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str
    type: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message, "type": self.type}


@dataclass(frozen=True)
class ValidationFailure:
    errors: tuple[FieldError, ...]

    @property
    def fields(self) -> list[str]:
        return sorted({e.field for e in self.errors})


def _case_folder(case: str | None):
    def fold(value: Any) -> Any:
        if not isinstance(value, str):
            return value
        value = normalize_query_value(value)
        if case == "lower":
            return value.lower()
        if case == "upper":
            return value.upper()
        return value

    return fold


def _annotation_for(spec: FieldSpec) -> Any:
    """Translate a FieldSpec into a pydantic type annotation."""
    pre = BeforeValidator(_case_folder(spec.case))

    if spec.kind is FieldKind.STRING:
        return Annotated[str, pre, Field(max_length=spec.max_length)]
    if spec.kind is FieldKind.INTEGER:
        return Annotated[int, pre, Field(ge=spec.minimum, le=spec.maximum)]
    if spec.kind is FieldKind.NUMBER:
        return Annotated[
            float,
            pre,
            Field(
                ge=spec.minimum,
                le=spec.maximum,
                gt=spec.exclusive_minimum,
                allow_inf_nan=False,
            ),
        ]
    if spec.kind is FieldKind.BOOLEAN:
        return Annotated[bool, pre]
    return Annotated[Literal[spec.choices], pre]  # type: ignore[valid-type]


def _check_field(spec: FieldSpec) -> None:
    if not spec.name or not spec.name.isidentifier() or spec.name.startswith("_"):
        raise QuerySpecError(f"invalid field name: {spec.name!r}")
    if hasattr(BaseModel, spec.name):
        raise QuerySpecError(f"field name {spec.name!r} shadows a model attribute")

    numeric = spec.kind in (FieldKind.INTEGER, FieldKind.NUMBER)
    if not numeric and (spec.minimum is not None or spec.maximum is not None):
        raise QuerySpecError(f"{spec.name}: min/max only apply to numeric fields")
    if spec.exclusive_minimum is not None and spec.kind is not FieldKind.NUMBER:
        raise QuerySpecError(f"{spec.name}: exclusive_minimum only applies to NUMBER")
    if spec.max_length is not None and spec.kind is not FieldKind.STRING:
        raise QuerySpecError(f"{spec.name}: max_length only applies to STRING")
    if spec.kind is FieldKind.ENUM and not spec.choices:
        raise QuerySpecError(f"{spec.name}: ENUM fields need choices")
    if spec.choices and spec.kind is not FieldKind.ENUM:
        raise QuerySpecError(f"{spec.name}: choices only apply to ENUM")
    if spec.minimum is not None and spec.maximum is not None and spec.minimum > spec.maximum:
        raise QuerySpecError(f"{spec.name}: minimum exceeds maximum")

    if spec.default is not None:
        try:
            TypeAdapter(_annotation_for(spec)).validate_python(spec.default)
        except ValidationError as exc:
            raise QuerySpecError(
                f"{spec.name}: default {spec.default!r} violates its constraints"
            ) from exc


@dataclass(frozen=True)
class QuerySpec:
    """Immutable parameter table for one endpoint."""

    endpoint: str
    fields: tuple[FieldSpec, ...]
    _model: type[BaseModel] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for spec in self.fields:
            if spec.name in seen:
                raise QuerySpecError(f"{self.endpoint}: duplicate field {spec.name!r}")
            seen.add(spec.name)
            _check_field(spec)

        definitions: dict[str, Any] = {
            spec.name: (_annotation_for(spec), spec.default)
            for spec in self.fields
        }
        model = create_model(
            f"{self.endpoint.title().replace('-', '')}Query",
            __config__=ConfigDict(extra="ignore", frozen=True),
            **definitions,
        )
        object.__setattr__(self, "_model", model)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(spec.name for spec in self.fields)

    def get(self, name: str) -> FieldSpec | None:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None


def _present(raw: Mapping[str, Any], names: tuple[str, ...]) -> dict[str, Any]:
    """Keep declared, non-blank parameters; blank values count as absent."""
    present: dict[str, Any] = {}
    for name in names:
        if name not in raw:
            continue
        value = raw[name]
        if isinstance(value, str) and not normalize_query_value(value):
            continue
        present[name] = value
    return present


def validate_query(
    raw: Mapping[str, Any], spec: QuerySpec
) -> Result[dict[str, Any], ValidationFailure]:
    """Parse raw query input against an endpoint's QuerySpec.

    Args:
        raw: Query parameters as received (string values).
        spec: Endpoint parameter table.

    Returns:
        Ok(dict) of typed values (defaults applied, absent optionals
        omitted) or Err(ValidationFailure) with every field error.
    """
    try:
        parsed = spec._model.model_validate(_present(raw, spec.names))
    except ValidationError as exc:
        errors = tuple(
            FieldError(
                field=str(err["loc"][0]) if err["loc"] else "",
                message=err["msg"],
                type=err["type"],
            )
            for err in exc.errors(include_url=False)
        )
        return Err(ValidationFailure(errors=errors))

    return Ok({k: v for k, v in parsed.model_dump().items() if v is not None})
