"""Validation rules for species records.

Every write of a species goes through ``validate_species`` first. The
function is pure: it looks at nothing but its input.
"""

from collections.abc import Mapping
from typing import Annotated, Any

from pydantic import (
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic_core import PydanticCustomError

from biodiversityhub.species.models import Kingdom

SPECIES_FIELDS = (
    "scientific_name",
    "common_name",
    "kingdom",
    "total_population",
    "image",
    "description",
    "endangered",
)

_URL_ADAPTER = TypeAdapter(AnyUrl)


class ValidationFailure(Exception):
    """A candidate record broke one or more field rules."""

    def __init__(self, field_errors: dict[str, list[str]]):
        self.field_errors = field_errors
        fields = ", ".join(sorted(field_errors))
        super().__init__(f"Invalid species record ({fields})")


def _blank_to_none(value: Any) -> Any:  # noqa: ANN401
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class SpeciesRecord(BaseModel):
    """A normalized species record ready to be written."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    scientific_name: str
    common_name: str | None = None
    kingdom: Kingdom
    total_population: Annotated[int, Field(strict=True, gt=0)] | None = None
    image: str | None = None
    description: str | None = None
    endangered: bool | None = None  # None until submission applies the default

    @field_validator("scientific_name", mode="before")
    @classmethod
    def require_scientific_name(cls, v: Any) -> Any:  # noqa: ANN401
        """Trim the scientific name and reject it when nothing is left."""
        if v is None or (isinstance(v, str) and not v.strip()):
            raise PydanticCustomError("required", "Scientific name is required")
        return v.strip() if isinstance(v, str) else v

    @field_validator("common_name", "image", "description", mode="before")
    @classmethod
    def empty_to_none(cls, v: Any) -> Any:  # noqa: ANN401
        """Absence, not the empty string, represents a missing value."""
        return _blank_to_none(v)

    @field_validator("image")
    @classmethod
    def validate_image_url(cls, v: str | None) -> str | None:
        """An image, when given, must be a well-formed URL."""
        if v is None:
            return None
        try:
            _URL_ADAPTER.validate_python(v)
        except ValidationError:
            raise PydanticCustomError("url", "Invalid url") from None
        return v

    def to_write_payload(self) -> dict[str, Any]:
        """Column values for an insert or update, with submission-time defaults."""
        payload = self.model_dump(mode="json")
        if payload["endangered"] is None:
            payload["endangered"] = False
        return payload


def validate_species(candidate: Mapping[str, Any]) -> SpeciesRecord:
    """Normalize a candidate record or report field-level violations.

    Args:
        candidate: Field values, typically a form draft

    Returns:
        The normalized record

    Raises:
        ValidationFailure: With messages keyed by field name
    """
    try:
        return SpeciesRecord.model_validate(dict(candidate))
    except ValidationError as e:
        field_errors: dict[str, list[str]] = {}
        for error in e.errors():
            field = str(error["loc"][0]) if error["loc"] else "__root__"
            field_errors.setdefault(field, []).append(error["msg"])
        raise ValidationFailure(field_errors) from None
