"""Tests for MutationFormController."""

from unittest.mock import AsyncMock

import pytest

from biodiversityhub.gateway.base import GatewayError
from biodiversityhub.notifications.toasts import ToastVariant
from biodiversityhub.species.controller import FormMode, MutationFormController, SubmitOutcome
from biodiversityhub.species.models import Species


@pytest.fixture
def on_success():
    return AsyncMock()


@pytest.fixture
def create_controller(gateway, notifier, alice_id, on_success):
    """Controller on the create path for Alice."""
    return MutationFormController(
        gateway, notifier, session_id=alice_id, on_success=on_success
    )


@pytest.fixture
def edit_controller(gateway, notifier, lion, on_success):
    """Controller editing Alice's lion."""
    return MutationFormController(gateway, notifier, species=lion, on_success=on_success)


def fill_valid(controller):
    controller.apply_input(
        {
            "scientific_name": "Ursus arctos",
            "common_name": "Brown bear",
            "kingdom": "Animalia",
            "total_population": "500",
            "image": "",
            "description": "",
        }
    )


class TestDraftState:
    """Test field access and dirty tracking."""

    def test_create_path_starts_empty(self, create_controller):
        """Should start from empty defaults."""
        assert create_controller.mode is FormMode.CREATE
        assert create_controller.get("scientific_name") == ""
        assert create_controller.get("kingdom") is None
        assert create_controller.get("endangered") is False
        assert create_controller.is_pristine

    def test_edit_path_prefills_from_record(self, edit_controller):
        """Should start from the existing record."""
        assert edit_controller.mode is FormMode.EDIT
        assert edit_controller.get("scientific_name") == "Panthera leo"
        assert edit_controller.get("kingdom") == "Animalia"
        assert edit_controller.get("total_population") == 23000
        assert edit_controller.is_pristine

    def test_setting_a_field_marks_it_dirty(self, edit_controller):
        """Should derive dirtiness from the pristine snapshot."""
        edit_controller.set_value("common_name", "African lion")

        assert edit_controller.is_dirty("common_name")
        assert not edit_controller.is_dirty("kingdom")
        assert edit_controller.dirty_fields == {"common_name"}

    def test_restoring_a_value_makes_it_pristine_again(self, edit_controller):
        """Should not remember that a field was once edited."""
        edit_controller.set_value("common_name", "African lion")
        edit_controller.set_value("common_name", "Lion")

        assert edit_controller.is_pristine

    def test_unknown_field_raises(self, create_controller):
        """Should refuse fields that are not part of a species."""
        with pytest.raises(KeyError):
            create_controller.set_value("author", "someone")

    def test_empty_population_text_maps_to_none(self, edit_controller):
        """Should clear the population instead of setting zero."""
        assert edit_controller.apply_input({"total_population": ""})

        assert edit_controller.get("total_population") is None

    def test_non_numeric_population_keeps_previous_value(self, edit_controller):
        """Should reject the text and leave the draft untouched."""
        assert not edit_controller.apply_input({"total_population": "lots"})

        assert edit_controller.get("total_population") == 23000
        assert edit_controller.errors == {"total_population": ["Not a valid integer value."]}


class TestSubmitValidation:
    """Test submissions rejected before reaching the gateway."""

    @pytest.mark.asyncio
    async def test_blank_scientific_name_never_reaches_gateway(
        self, create_controller, gateway, mocker
    ):
        """Should report a field error and skip the gateway."""
        insert = mocker.spy(gateway, "insert")
        fill_valid(create_controller)
        create_controller.set_value("scientific_name", "   ")

        outcome = await create_controller.submit()

        assert outcome is SubmitOutcome.INVALID
        assert create_controller.errors == {"scientific_name": ["Scientific name is required"]}
        insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_kingdom_never_reaches_gateway(self, edit_controller, gateway, mocker):
        """Should fail validation before any update."""
        update = mocker.spy(gateway, "update")
        edit_controller.set_value("kingdom", "Plants")

        outcome = await edit_controller.submit()

        assert outcome is SubmitOutcome.INVALID
        assert "kingdom" in edit_controller.errors
        update.assert_not_called()

    @pytest.mark.asyncio
    async def test_pending_input_error_blocks_submit(self, edit_controller, gateway, mocker):
        """Should not submit while a field holds unconvertible text."""
        update = mocker.spy(gateway, "update")
        edit_controller.apply_input({"total_population": "12abc"})

        outcome = await edit_controller.submit()

        assert outcome is SubmitOutcome.INVALID
        assert edit_controller.errors == {"total_population": ["Not a valid integer value."]}
        update.assert_not_called()

    @pytest.mark.asyncio
    async def test_correcting_input_clears_the_error(self, edit_controller):
        """Should accept the form once the offending field is fixed."""
        edit_controller.apply_input({"total_population": "12abc"})
        edit_controller.apply_input({"total_population": "12"})

        assert await edit_controller.submit() is SubmitOutcome.SAVED

    @pytest.mark.asyncio
    async def test_create_without_session_is_refused(self, gateway, notifier, mocker):
        """Should not insert a species without an author."""
        insert = mocker.spy(gateway, "insert")
        controller = MutationFormController(gateway, notifier, session_id=None)
        fill_valid(controller)

        outcome = await controller.submit()

        assert outcome is SubmitOutcome.FAILED
        insert.assert_not_called()
        assert notifier.toasts[-1].variant is ToastVariant.DESTRUCTIVE


class TestSubmitCreate:
    """Test the create path."""

    @pytest.mark.asyncio
    async def test_insert_attaches_session_as_author(
        self, create_controller, gateway, alice_id, mocker
    ):
        """Should issue exactly one insert carrying the author."""
        insert = mocker.spy(gateway, "insert")
        fill_valid(create_controller)

        outcome = await create_controller.submit()

        assert outcome is SubmitOutcome.SAVED
        insert.assert_called_once()
        table, payload = insert.call_args.args
        assert table == "species"
        assert payload["author"] == alice_id
        assert payload["endangered"] is False

    @pytest.mark.asyncio
    async def test_empty_image_is_stored_as_null(self, create_controller, gateway):
        """Should write None, not an empty string."""
        fill_valid(create_controller)

        await create_controller.submit()

        stored = await gateway.select_single("species", filters={"scientific_name": "Ursus arctos"})
        assert stored["image"] is None
        assert stored["description"] is None

    @pytest.mark.asyncio
    async def test_success_resets_pristine_and_signals(
        self, create_controller, notifier, on_success
    ):
        """Should treat the submitted values as the new pristine state."""
        fill_valid(create_controller)

        await create_controller.submit()

        assert create_controller.is_pristine
        assert create_controller.get("scientific_name") == "Ursus arctos"
        on_success.assert_awaited_once()
        assert notifier.toasts[-1].title == "New species added!"


class TestSubmitEdit:
    """Test the edit path."""

    @pytest.mark.asyncio
    async def test_update_is_keyed_by_id_without_author(self, edit_controller, gateway, mocker):
        """Should never send the author in an update."""
        update = mocker.spy(gateway, "update")
        edit_controller.set_value("common_name", "African lion")

        await edit_controller.submit()

        update.assert_called_once()
        table, payload, filters = update.call_args.args
        assert table == "species"
        assert filters == {"id": 1}
        assert "author" not in payload
        assert payload["common_name"] == "African lion"

    @pytest.mark.asyncio
    async def test_identical_draft_still_updates_once(self, edit_controller, gateway, mocker):
        """Should not short-circuit an unchanged draft."""
        update = mocker.spy(gateway, "update")

        outcome = await edit_controller.submit()

        assert outcome is SubmitOutcome.SAVED
        update.assert_called_once()

    @pytest.mark.asyncio
    async def test_population_round_trips(self, gateway, notifier, lion):
        """Should show the saved population when the form is reopened on the stored record."""
        controller = MutationFormController(gateway, notifier, species=lion)
        controller.apply_input({"total_population": "500"})
        await controller.submit()

        stored = Species.model_validate(await gateway.select_single("species", filters={"id": 1}))
        reopened = MutationFormController(gateway, notifier, species=stored)

        assert reopened.get("total_population") == 500

    @pytest.mark.asyncio
    async def test_gateway_error_preserves_draft(
        self, edit_controller, gateway, notifier, on_success
    ):
        """Should notify, keep the draft and stay open for a retry."""
        gateway.update = AsyncMock(side_effect=GatewayError("permission denied for table species"))
        edit_controller.set_value("common_name", "African lion")

        outcome = await edit_controller.submit()

        assert outcome is SubmitOutcome.FAILED
        assert edit_controller.get("common_name") == "African lion"
        assert edit_controller.is_dirty("common_name")
        on_success.assert_not_awaited()
        toast = notifier.toasts[-1]
        assert toast.title == "Error updating species."
        assert toast.description == "permission denied for table species"
        assert toast.variant is ToastVariant.DESTRUCTIVE

    @pytest.mark.asyncio
    async def test_retry_after_gateway_error(self, edit_controller, gateway):
        """Should succeed on a manual retry with the preserved draft."""
        original_update = gateway.update
        gateway.update = AsyncMock(side_effect=GatewayError("network down"))
        edit_controller.set_value("common_name", "African lion")
        await edit_controller.submit()

        gateway.update = original_update
        outcome = await edit_controller.submit()

        assert outcome is SubmitOutcome.SAVED
        stored = await gateway.select_single("species", filters={"id": 1})
        assert stored["common_name"] == "African lion"
