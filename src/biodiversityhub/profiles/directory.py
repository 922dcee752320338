"""Directory of user profiles for signed-in viewers."""

import logging

from pydantic import BaseModel, ValidationError

from biodiversityhub.gateway.base import DataGateway, GatewayError, SessionRequiredError

logger = logging.getLogger(__name__)

LOAD_ERROR = "Failed to load users."


class DirectoryEntry(BaseModel):
    """Public fields of a profile as listed in the directory."""

    email: str
    display_name: str | None = None
    biography: str | None = None

    @property
    def name_label(self) -> str:
        return self.display_name or "Unknown User"

    @property
    def biography_label(self) -> str:
        return self.biography or "No biography provided for this user."


class UserDirectory:
    """Lists every profile. A failed fetch is shown as a message, not raised."""

    def __init__(self, gateway: DataGateway) -> None:
        self.gateway = gateway
        self.entries: list[DirectoryEntry] = []
        self.error: str | None = None

    async def load(self) -> list[DirectoryEntry]:
        """Fetch the profiles.

        Raises:
            SessionRequiredError: If nobody is signed in
        """
        if not await self.gateway.get_session():
            raise SessionRequiredError("Sign in to view users")

        try:
            rows = await self.gateway.select("profiles", "email, display_name, biography")
            self.entries = [DirectoryEntry.model_validate(row) for row in rows]
            self.error = None
        except (GatewayError, ValidationError) as e:
            logger.error("Failed to load profiles: %s", e)
            self.entries = []
            self.error = LOAD_ERROR
        return self.entries
