"""Draft state and submission for species create and edit forms."""

import logging
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from typing import Any

from biodiversityhub.gateway.base import DataGateway, GatewayError
from biodiversityhub.notifications.toasts import ToastNotifier
from biodiversityhub.species.forms import convert_form_input
from biodiversityhub.species.models import Species
from biodiversityhub.species.schema import (
    SPECIES_FIELDS,
    SpeciesRecord,
    ValidationFailure,
    validate_species,
)

logger = logging.getLogger(__name__)

SuccessCallback = Callable[[], Awaitable[None]]

EMPTY_DRAFT: dict[str, Any] = {
    "scientific_name": "",
    "common_name": None,
    "kingdom": None,
    "total_population": None,
    "image": None,
    "description": None,
    "endangered": False,
}


class FormMode(str, Enum):
    CREATE = "create"
    EDIT = "edit"


class SubmitOutcome(str, Enum):
    """Result of a submit attempt."""

    INVALID = "invalid"  # Rejected locally, nothing sent
    FAILED = "failed"  # Gateway refused the write
    SAVED = "saved"


class MutationFormController:
    """Editable draft of a single species record.

    The draft starts from an existing record on the edit path or from empty
    defaults on the create path. Dirty state is derived by comparing the
    draft with the pristine snapshot, which moves forward on every
    successful save.
    """

    def __init__(
        self,
        gateway: DataGateway,
        notifier: ToastNotifier,
        species: Species | None = None,
        session_id: str | None = None,
        on_success: SuccessCallback | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            gateway: Remote store receiving the write
            notifier: Sink for success and failure toasts
            species: Record to edit; None selects the create path
            session_id: Identity recorded as author on create
            on_success: Awaited after a successful write
        """
        self.gateway = gateway
        self.notifier = notifier
        self.species = species
        self.session_id = session_id
        self.on_success = on_success
        self.mode = FormMode.CREATE if species is None else FormMode.EDIT

        self.pristine = self._initial_values()
        self.draft = dict(self.pristine)
        self.errors: dict[str, list[str]] = {}
        self._input_errors: dict[str, list[str]] = {}
        self.is_submitting = False

    def _initial_values(self) -> dict[str, Any]:
        if self.species is None:
            return dict(EMPTY_DRAFT)
        values = self.species.model_dump(include=set(SPECIES_FIELDS))
        values["kingdom"] = self.species.kingdom.value
        if values["scientific_name"] is None:
            values["scientific_name"] = ""
        return values

    # ==================== Field access ====================

    def get(self, field: str) -> Any:  # noqa: ANN401
        """Current draft value of a field."""
        self._require_field(field)
        return self.draft[field]

    def set_value(self, field: str, value: Any) -> None:  # noqa: ANN401
        """Replace a typed draft value."""
        self._require_field(field)
        self.draft[field] = value
        self._input_errors.pop(field, None)
        self.errors.pop(field, None)

    def apply_input(self, formdata: Mapping[str, str]) -> bool:
        """Apply raw text input to the draft.

        Fields whose text cannot be converted keep their previous draft value
        and carry an error until corrected.

        Returns:
            True when every supplied field converted cleanly
        """
        values, errors = convert_form_input(formdata)
        for field, value in values.items():
            self.set_value(field, value)
        for field, messages in errors.items():
            self._input_errors[field] = messages
            self.errors[field] = messages
        return not errors

    def is_dirty(self, field: str) -> bool:
        """Whether a field differs from its pristine value."""
        self._require_field(field)
        return self.draft[field] != self.pristine[field]

    @property
    def dirty_fields(self) -> set[str]:
        return {field for field in SPECIES_FIELDS if self.is_dirty(field)}

    @property
    def is_pristine(self) -> bool:
        return not self.dirty_fields

    def _require_field(self, field: str) -> None:
        if field not in SPECIES_FIELDS:
            raise KeyError(f"Unknown species field: {field}")

    # ==================== Submission ====================

    async def submit(self) -> SubmitOutcome:
        """Validate the draft and write it to the gateway.

        Returns:
            INVALID when rejected locally, FAILED when the gateway refused
            the write, SAVED otherwise
        """
        if self._input_errors:
            self.errors = dict(self._input_errors)
            return SubmitOutcome.INVALID

        try:
            record = validate_species(self.draft)
        except ValidationFailure as e:
            self.errors = e.field_errors
            logger.debug("Species draft rejected: %s", e.field_errors)
            return SubmitOutcome.INVALID
        self.errors = {}

        if self.mode is FormMode.CREATE and not self.session_id:
            self.notifier.error("Error adding species.", "You must be signed in to add species.")
            return SubmitOutcome.FAILED

        self.is_submitting = True
        try:
            await self._write(record)
        except GatewayError as e:
            if self.mode is FormMode.CREATE:
                self.notifier.error("Error adding new species.", e.message)
            else:
                self.notifier.error("Error updating species.", e.message)
            return SubmitOutcome.FAILED
        finally:
            self.is_submitting = False

        submitted = record.model_dump(mode="json")
        self.pristine = dict(submitted)
        self.draft = dict(submitted)

        if self.mode is FormMode.CREATE:
            self.notifier.notify(
                "New species added!", f"Successfully added {record.scientific_name}."
            )
        else:
            self.notifier.notify(
                "Species updated!", f"Successfully updated {record.scientific_name}."
            )

        if self.on_success is not None:
            await self.on_success()
        return SubmitOutcome.SAVED

    async def _write(self, record: SpeciesRecord) -> None:
        payload = record.to_write_payload()
        if self.species is None:
            payload["author"] = self.session_id
            await self.gateway.insert("species", payload)
            logger.info("Created species %s", record.scientific_name)
        else:
            # author is immutable; never part of an update
            payload.pop("author", None)
            await self.gateway.update("species", payload, {"id": self.species.id})
            logger.info("Updated species %d", self.species.id)
