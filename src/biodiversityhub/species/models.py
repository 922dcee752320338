"""Catalog records as returned by the gateway."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, model_validator


class Kingdom(str, Enum):
    """Fixed taxonomy of kingdoms a species may belong to."""

    ANIMALIA = "Animalia"
    PLANTAE = "Plantae"
    FUNGI = "Fungi"
    PROTISTA = "Protista"
    ARCHAEA = "Archaea"
    BACTERIA = "Bacteria"


class Species(BaseModel):
    """A species record as stored remotely."""

    id: int
    scientific_name: str
    common_name: str | None = None
    kingdom: Kingdom
    total_population: int | None = None
    image: str | None = None
    description: str | None = None
    endangered: bool = False
    author: str | None = None  # Profile id of the creator, never updated

    @property
    def display_name(self) -> str:
        """Common name when known, scientific name otherwise."""
        return self.common_name or self.scientific_name


class Profile(BaseModel):
    """Public profile of an authenticated user."""

    id: str
    display_name: str
    email: str
    biography: str | None = None


class Comment(BaseModel):
    """A comment on a species, with its author's display name joined in."""

    id: int
    species_id: int
    user_id: str
    comment_text: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    author_display_name: str | None = None

    @model_validator(mode="before")
    @classmethod
    def flatten_profile(cls, data: Any) -> Any:  # noqa: ANN401
        """Lift ``profiles.display_name`` from an embedded relation."""
        if isinstance(data, dict) and "profiles" in data:
            data = dict(data)
            profile = data.pop("profiles")
            if isinstance(profile, dict) and "author_display_name" not in data:
                data["author_display_name"] = profile.get("display_name")
        return data

    @property
    def author_label(self) -> str:
        return self.author_display_name or "Unknown User"
