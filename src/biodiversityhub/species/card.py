"""Per-species summary with ownership-gated actions."""

import logging
from collections.abc import Awaitable, Callable

from biodiversityhub.gateway.base import DataGateway, GatewayError
from biodiversityhub.notifications.toasts import ToastNotifier
from biodiversityhub.species.details import SpeciesDetailDialog
from biodiversityhub.species.dialogs import EditSpeciesDialog
from biodiversityhub.species.models import Species

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]
ReloadCallback = Callable[[], Awaitable[None]]


class SpeciesCard:
    """Summary of one species for a given viewer.

    Everything the card shows derives from ``(species, session_id)``; the
    card performs no fetch of its own. The ownership gate only decides which
    controls exist. The gateway's row-level policies remain the authority.
    """

    def __init__(
        self,
        gateway: DataGateway,
        notifier: ToastNotifier,
        species: Species,
        session_id: str | None,
        confirm: Confirm,
        reload: ReloadCallback,
        preview_length: int = 150,
    ) -> None:
        """Initialize the card.

        Args:
            gateway: Remote store used for deletion and by the embedded dialogs
            notifier: Sink for toasts
            species: Record to display
            session_id: Identity of the viewer
            confirm: Asks the viewer a yes/no question
            reload: Re-fetches the whole species list
            preview_length: Characters of description shown in the summary
        """
        self.gateway = gateway
        self.notifier = notifier
        self.species = species
        self.session_id = session_id
        self.confirm = confirm
        self.reload = reload
        self.preview_length = preview_length
        self.is_deleting = False

        self.can_edit = bool(session_id) and species.author == session_id
        self.details = SpeciesDetailDialog(gateway, species, notifier)
        self.edit_dialog = (
            EditSpeciesDialog(gateway, notifier, species, on_saved=reload)
            if self.can_edit
            else None
        )

    @property
    def summary(self) -> str:
        """Description preview, empty when the species has no description."""
        if not self.species.description:
            return ""
        return self.species.description[: self.preview_length].strip() + "..."

    async def delete(self) -> bool:
        """Delete the species after confirmation, then reload the list.

        The reload happens whether the delete succeeded or failed; only the
        toast shown before it differs.

        Returns:
            True when the gateway accepted the delete
        """
        if not self.can_edit or self.is_deleting:
            return False

        name = self.species.display_name
        if not self.confirm(f"Are you sure you want to delete {name}?"):
            return False

        self.is_deleting = True
        try:
            await self.gateway.delete("species", {"id": self.species.id})
        except GatewayError as e:
            self.notifier.error("Error deleting species", e.message)
            deleted = False
        else:
            logger.info("Deleted species %d", self.species.id)
            self.notifier.notify("Species deleted", f"{name} was successfully deleted.")
            deleted = True
        finally:
            self.is_deleting = False

        await self.reload()
        return deleted
