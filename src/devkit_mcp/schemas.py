"""Pydantic schemas for tool parameter validation and response envelopes."""
from typing import Annotated, Any, Optional, TypeVar, Union

from pydantic import (
    AllowInfNan,
    BaseModel,
    ConfigDict,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .errors import InvalidArgumentsError

# Strict floats also accept ints; NaN and infinity are rejected
Number = Annotated[StrictFloat, AllowInfNan(False)]

# Flat scalar values accepted in open-ended "extra attributes" maps
Scalar = Union[StrictStr, StrictInt, StrictFloat, StrictBool, None]
ExtensionFields = dict[str, Scalar]


class ToolParameters(BaseModel):
    """Base schema for tool arguments.

    Attributes are snake_case (matching the remote APIs); the names advertised
    to agents are their camelCase aliases. Unknown fields are ignored. Fields
    use the pydantic ``Strict*`` types, so ``"5"`` is not accepted as an integer.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    def remote_fields(
        self,
        *names: str,
        rename: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        """Collect set fields under their remote names.

        Args:
            names: Attribute names to include (all fields when empty)
            rename: Mapping from attribute name to remote field name for the
                fields whose remote name differs from the attribute name

        Returns:
            Dictionary of remote field name to value, omitting ``None`` values
        """
        rename = rename or {}
        data = self.model_dump(by_alias=False, exclude_none=True)
        selected = names or tuple(data.keys())
        return {rename.get(name, name): data[name] for name in selected if name in data}


ParamsT = TypeVar("ParamsT", bound=ToolParameters)


# Labels pydantic appends to ``loc`` for the member of a union that failed
_UNION_MEMBER_TAGS = {"str", "int", "float", "bool", "none", "list", "dict"}


def _format_location(loc: tuple) -> str:
    parts = list(loc)
    if len(parts) > 1 and isinstance(parts[-1], str) and (parts[-1] in _UNION_MEMBER_TAGS or "[" in parts[-1]):
        parts.pop()
    return ".".join(str(part) for part in parts)


def validate_arguments(model: type[ParamsT], raw: dict) -> ParamsT:
    """Validate raw arguments against a parameter schema.

    All violations are collected rather than stopping at the first one. A
    value rejected by every member of a union is reported once, at the
    field's own path, with the members' reasons joined.

    Raises:
        InvalidArgumentsError: with one ``(dotted_path, reason)`` entry per violation
    """
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        reasons: dict[str, list[str]] = {}
        for err in e.errors():
            messages = reasons.setdefault(_format_location(err["loc"]), [])
            if err["msg"] not in messages:
                messages.append(err["msg"])
        violations = [(path, " or ".join(messages)) for path, messages in reasons.items()]
        raise InvalidArgumentsError(violations) from e


def input_schema(model: type[ToolParameters]) -> dict:
    """JSON-Schema advertised to agents for a parameter schema."""
    schema = model.model_json_schema(by_alias=True)
    schema.setdefault("properties", {})
    schema["type"] = "object"
    return schema


# ============================================================================
# Response Envelope
# ============================================================================

class ErrorDetail(BaseModel):
    """Error half of a response envelope."""

    type: str
    message: str
    details: Optional[Any] = None


class ResponseEnvelope(BaseModel):
    """Uniform result of one invocation: serialized success content XOR an error."""

    content: Optional[str] = None
    error: Optional[ErrorDetail] = None

    @model_validator(mode="after")
    def check_exactly_one(self) -> "ResponseEnvelope":
        if (self.content is None) == (self.error is None):
            raise ValueError("Exactly one of content or error must be set")
        return self

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def success(cls, content: str) -> "ResponseEnvelope":
        return cls(content=content)

    @classmethod
    def failure(cls, error_type: str, message: str, details: Optional[Any] = None) -> "ResponseEnvelope":
        return cls(error=ErrorDetail(type=error_type, message=message, details=details))
