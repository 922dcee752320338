"""Species detail dialog: author profile and threaded comments.

Opening the dialog dispatches three independent fetches (viewer session,
author profile, comments). Each one fails on its own without blanking the
others; failures are logged and never retried. Closing the dialog cancels
whatever is still in flight and drops all fetched state, so the next open
starts from nothing.

Results are written back only while the dialog is still in the lifetime that
requested them. A generation counter moves on every open and close, which
keeps late answers from landing in a closed or re-opened dialog.
"""

import asyncio
import logging
from collections.abc import Coroutine
from enum import Enum
from typing import Any

from pydantic import ValidationError

from biodiversityhub.gateway.base import DataGateway, GatewayError
from biodiversityhub.notifications.toasts import ToastNotifier
from biodiversityhub.species.models import Comment, Profile, Species

logger = logging.getLogger(__name__)

COMMENT_COLUMNS = (
    "id, species_id, user_id, comment_text, created_at, updated_at, profiles(display_name)"
)
AUTHOR_UNAVAILABLE = "Author information not available"


class DialogState(str, Enum):
    """Lifecycle of a detail dialog."""

    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"


class SpeciesDetailDialog:
    """Extended view of one species, fetched on demand."""

    def __init__(self, gateway: DataGateway, species: Species, notifier: ToastNotifier) -> None:
        self.gateway = gateway
        self.species = species
        self.notifier = notifier
        self.state = DialogState.CLOSED
        self._generation = 0
        self._tasks: set[asyncio.Task] = set()
        self._reset()

    def _reset(self) -> None:
        self.session_id: str | None = None
        self.author: Profile | None = None
        self.comments: list[Comment] = []
        self.comment_input = ""

    # ==================== Lifecycle ====================

    @property
    def is_open(self) -> bool:
        return self.state is not DialogState.CLOSED

    def open(self) -> None:
        """Open the dialog and start its fetches.

        Must be called from a running event loop; the fetches run as tasks
        and ``wait_until_loaded`` awaits them.
        """
        if self.state is not DialogState.CLOSED:
            return
        self.state = DialogState.OPENING
        self._generation += 1
        generation = self._generation
        self._dispatch(self._load_session(generation))
        self._dispatch(self._load_author(generation))
        self._dispatch(self._load_comments(generation))
        self.state = DialogState.OPEN

    def close(self) -> None:
        """Close the dialog, cancel pending fetches and forget fetched data."""
        if self.state is DialogState.CLOSED:
            return
        self.state = DialogState.CLOSED
        self._generation += 1
        for task in list(self._tasks):
            task.cancel()
        self._reset()

    def update_species(self, species: Species) -> None:
        """Swap in a newer copy of the record, re-fetching what depends on it."""
        previous = self.species
        self.species = species
        if self.state is not DialogState.OPEN:
            return
        if species.author != previous.author:
            self.author = None
            self._dispatch(self._load_author(self._generation))
        if species.id != previous.id:
            self.comments = []
            self._dispatch(self._load_comments(self._generation))

    async def wait_until_loaded(self) -> None:
        """Wait for every fetch dispatched so far to finish."""
        while pending := [task for task in self._tasks if not task.done()]:
            await asyncio.gather(*pending, return_exceptions=True)

    def _dispatch(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _is_live(self, generation: int) -> bool:
        return self.state is not DialogState.CLOSED and generation == self._generation

    # ==================== Fetches ====================

    async def _load_session(self, generation: int) -> None:
        try:
            session_id = await self.gateway.get_session()
        except GatewayError as e:
            logger.warning("Could not resolve viewer session: %s", e)
            return
        if self._is_live(generation):
            self.session_id = session_id

    async def _load_author(self, generation: int) -> None:
        author_id = self.species.author
        if not author_id:
            return
        try:
            row = await self.gateway.select_single("profiles", "*", {"id": author_id})
            author = Profile.model_validate(row)
        except (GatewayError, ValidationError) as e:
            logger.warning(
                "Could not load author %s of species %d: %s", author_id, self.species.id, e
            )
            return
        if self._is_live(generation) and self.species.author == author_id:
            self.author = author

    async def _load_comments(self, generation: int) -> None:
        species_id = self.species.id
        try:
            rows = await self.gateway.select(
                "comments",
                COMMENT_COLUMNS,
                {"species_id": species_id},
                order_by="created_at",
                ascending=False,
            )
            comments = [Comment.model_validate(row) for row in rows]
        except (GatewayError, ValidationError) as e:
            logger.warning("Could not load comments for species %d: %s", species_id, e)
            return
        if self._is_live(generation) and self.species.id == species_id:
            self.comments = comments

    # ==================== Comment mutations ====================

    @property
    def can_post(self) -> bool:
        return self.state is DialogState.OPEN and bool(self.session_id)

    def can_delete(self, comment: Comment) -> bool:
        """Advisory check: only a comment's author sees its delete control."""
        return bool(self.session_id) and comment.user_id == self.session_id

    async def add_comment(self, text: str | None = None) -> Comment | None:
        """Post a comment and prepend the stored row to the list.

        Args:
            text: Comment body; defaults to the dialog's ``comment_input``

        Returns:
            The created comment, or None when nothing was posted
        """
        body = (self.comment_input if text is None else text).strip()
        if not body or not self.can_post:
            return None

        generation = self._generation
        try:
            row = await self.gateway.insert(
                "comments",
                {
                    "species_id": self.species.id,
                    "user_id": self.session_id,
                    "comment_text": body,
                },
                returning=COMMENT_COLUMNS,
            )
        except GatewayError as e:
            logger.warning("Could not post comment on species %d: %s", self.species.id, e)
            self.notifier.error("Error posting comment.", e.message)
            return None

        comment = Comment.model_validate(row)
        if self._is_live(generation):
            self.comments.insert(0, comment)
            self.comment_input = ""
        return comment

    async def delete_comment(self, comment_id: int) -> bool:
        """Delete one of the viewer's own comments.

        Returns:
            True when the comment was deleted
        """
        comment = next((c for c in self.comments if c.id == comment_id), None)
        if comment is None or not self.can_delete(comment):
            return False

        generation = self._generation
        try:
            await self.gateway.delete("comments", {"id": comment_id})
        except GatewayError as e:
            logger.warning("Could not delete comment %d: %s", comment_id, e)
            self.notifier.error("Error deleting comment.", e.message)
            return False

        if self._is_live(generation):
            self.comments = [c for c in self.comments if c.id != comment_id]
        return True

    # ==================== Display ====================

    @property
    def title(self) -> str:
        if self.species.common_name:
            return f"{self.species.common_name} ({self.species.scientific_name})"
        return self.species.scientific_name

    @property
    def author_label(self) -> str:
        if self.author is None:
            return AUTHOR_UNAVAILABLE
        return f"{self.author.display_name} ({self.author.email})"

    @property
    def population_label(self) -> str:
        if self.species.total_population is None:
            return "Unknown"
        return f"{self.species.total_population:,}"

    @property
    def description_label(self) -> str:
        return self.species.description or "No description available."
