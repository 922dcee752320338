"""Conversion of raw form input into draft values.

Browsers post every field as text. The form below turns that text into the
typed values a draft holds, and refuses numeric text that cannot become a
valid population before it ever reaches the validation schema.
"""

from collections.abc import Mapping
from typing import Any

from wtforms import BooleanField, Form, IntegerField, SelectField, StringField, TextAreaField
from wtforms.validators import Optional, ValidationError

from biodiversityhub.species.models import Kingdom
from biodiversityhub.species.schema import SPECIES_FIELDS


def positive(form: Form, field: IntegerField) -> None:
    """Reject zero and negative numbers; unparsable input is reported by the field itself."""
    if field.data is not None and field.data < 1:
        raise ValidationError("Number must be at least 1.")


class _FormInput(dict):
    """Single-valued mapping exposing the multidict interface wtforms expects."""

    def getlist(self, key: str) -> list[Any]:
        return [self[key]] if key in self else []


class SpeciesForm(Form):
    """Form for creating or editing a species."""

    scientific_name = StringField("Scientific Name")
    common_name = StringField("Common Name")
    # Choice checking belongs to the validation schema
    kingdom = SelectField(
        "Kingdom", choices=[(k.value, k.value) for k in Kingdom], validate_choice=False
    )
    total_population = IntegerField("Total Population", validators=[Optional(), positive])
    image = StringField("Image URL")
    description = TextAreaField("Description")
    endangered = BooleanField("Endangered Status", false_values=("false", "no", "off", "0", ""))


def convert_form_input(
    formdata: Mapping[str, str],
) -> tuple[dict[str, Any], dict[str, list[str]]]:
    """Convert posted text into draft values.

    Only fields present in ``formdata`` are considered. An empty population
    becomes None; text that is not a positive integer is reported instead of
    converted.

    Args:
        formdata: Field name to raw text

    Returns:
        Tuple of (converted values, errors by field)
    """
    known = {name: value for name, value in formdata.items() if name in SPECIES_FIELDS}
    if not known:
        return {}, {}

    form = SpeciesForm(formdata=_FormInput(known))
    form.validate()

    values: dict[str, Any] = {}
    errors: dict[str, list[str]] = {}
    for name in known:
        field = form[name]
        if field.errors:
            errors[name] = list(field.errors)
        else:
            values[name] = field.data
    return values, errors
