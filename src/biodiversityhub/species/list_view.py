"""Snapshot of all species for the signed-in viewer."""

import logging

from biodiversityhub.gateway.base import DataGateway, SessionRequiredError
from biodiversityhub.notifications.toasts import ToastNotifier
from biodiversityhub.species.card import Confirm, SpeciesCard
from biodiversityhub.species.dialogs import AddSpeciesDialog
from biodiversityhub.species.models import Species

logger = logging.getLogger(__name__)


class SpeciesListView:
    """Read-through copy of the species table, rebuilt on every load.

    Species mutations never patch this list in place. They request a
    ``refresh``, which re-fetches the complete snapshot.
    """

    def __init__(
        self,
        gateway: DataGateway,
        notifier: ToastNotifier,
        confirm: Confirm,
        preview_length: int = 150,
    ) -> None:
        self.gateway = gateway
        self.notifier = notifier
        self.confirm = confirm
        self.preview_length = preview_length
        self.session_id: str | None = None
        self.species: list[Species] = []
        self.cards: list[SpeciesCard] = []
        self.add_dialog: AddSpeciesDialog | None = None

    async def load(self) -> list[SpeciesCard]:
        """Fetch the snapshot and build one card per species, newest first.

        Raises:
            SessionRequiredError: If nobody is signed in
            GatewayError: If the species cannot be fetched
        """
        session_id = await self.gateway.get_session()
        if not session_id:
            raise SessionRequiredError("Sign in to view the species list")

        rows = await self.gateway.select("species", "*", order_by="id", ascending=False)
        species = [Species.model_validate(row) for row in rows]

        # Dialogs of the previous snapshot must not keep fetching
        for card in self.cards:
            card.details.close()

        self.session_id = session_id
        self.species = species
        self.cards = [
            SpeciesCard(
                self.gateway,
                self.notifier,
                item,
                session_id,
                confirm=self.confirm,
                reload=self.refresh,
                preview_length=self.preview_length,
            )
            for item in species
        ]
        self.add_dialog = AddSpeciesDialog(
            self.gateway, self.notifier, user_id=session_id, on_saved=self.refresh
        )
        logger.info("Loaded %d species", len(species))
        return self.cards

    async def refresh(self) -> None:
        """Re-fetch the full snapshot."""
        await self.load()

    def card_for(self, species_id: int) -> SpeciesCard | None:
        return next((card for card in self.cards if card.species.id == species_id), None)
