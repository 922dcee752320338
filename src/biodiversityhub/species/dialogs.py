"""Modal surfaces for creating and editing species."""

from abc import ABC, abstractmethod
from collections.abc import Mapping

from biodiversityhub.gateway.base import DataGateway
from biodiversityhub.notifications.toasts import ToastNotifier
from biodiversityhub.species.controller import (
    MutationFormController,
    SubmitOutcome,
    SuccessCallback,
)
from biodiversityhub.species.models import Species


class SpeciesFormDialog(ABC):
    """Base for dialogs wrapping a MutationFormController.

    A successful save closes the dialog and then awaits ``on_saved``, which
    the list view uses to re-fetch its snapshot.
    """

    title = ""

    def __init__(
        self,
        gateway: DataGateway,
        notifier: ToastNotifier,
        on_saved: SuccessCallback | None = None,
    ) -> None:
        self.gateway = gateway
        self.notifier = notifier
        self.on_saved = on_saved
        self.is_open = False
        self.controller = self._build_controller()

    @abstractmethod
    def _build_controller(self) -> MutationFormController:
        """Create the controller backing this dialog."""

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False

    async def submit(self, formdata: Mapping[str, str] | None = None) -> SubmitOutcome:
        """Apply optional raw input, then submit the draft.

        The dialog stays open unless the write succeeds.
        """
        if formdata:
            self.controller.apply_input(formdata)
        return await self.controller.submit()

    async def _handle_success(self) -> None:
        self.close()
        if self.on_saved is not None:
            await self.on_saved()


class AddSpeciesDialog(SpeciesFormDialog):
    """Create path: empty draft, author taken from the session."""

    title = "Add Species"

    def __init__(
        self,
        gateway: DataGateway,
        notifier: ToastNotifier,
        user_id: str | None,
        on_saved: SuccessCallback | None = None,
    ) -> None:
        self.user_id = user_id
        super().__init__(gateway, notifier, on_saved)

    def _build_controller(self) -> MutationFormController:
        return MutationFormController(
            self.gateway,
            self.notifier,
            session_id=self.user_id,
            on_success=self._handle_success,
        )

    async def _handle_success(self) -> None:
        # The next species starts from a blank form
        self.controller = self._build_controller()
        await super()._handle_success()


class EditSpeciesDialog(SpeciesFormDialog):
    """Edit path: draft pre-filled from an existing record."""

    title = "Edit Species"

    def __init__(
        self,
        gateway: DataGateway,
        notifier: ToastNotifier,
        species: Species,
        on_saved: SuccessCallback | None = None,
    ) -> None:
        self.species = species
        super().__init__(gateway, notifier, on_saved)

    def _build_controller(self) -> MutationFormController:
        return MutationFormController(
            self.gateway,
            self.notifier,
            species=self.species,
            on_success=self._handle_success,
        )
