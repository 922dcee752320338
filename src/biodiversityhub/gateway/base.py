"""Remote data gateway contract.

The gateway is the authoritative store for species, profiles and comments.
Everything else in the package is a consumer of this interface and receives
an instance through its constructor.
"""

from abc import ABC, abstractmethod
from typing import Any

Row = dict[str, Any]
Filters = dict[str, Any]


class GatewayError(Exception):
    """Network, authorization or constraint failure reported by the remote store."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RecordNotFoundError(GatewayError):
    """A single-row fetch matched no row (or more than one)."""


class SessionRequiredError(Exception):
    """A protected view was loaded without an authenticated session."""


def split_columns(columns: str) -> list[str]:
    """Split a PostgREST column list on top-level commas.

    ``"*, profiles(display_name, email)"`` becomes
    ``["*", "profiles(display_name, email)"]``.
    """
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for char in columns:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return [part for part in parts if part]


class DataGateway(ABC):
    """Authenticated CRUD access to the catalog tables."""

    @abstractmethod
    async def get_session(self) -> str | None:
        """Return the identity of the signed-in user, or None."""

    @abstractmethod
    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Filters | None = None,
        order_by: str | None = None,
        ascending: bool = True,
    ) -> list[Row]:
        """Fetch rows matching all equality filters."""

    @abstractmethod
    async def select_single(
        self, table: str, columns: str = "*", filters: Filters | None = None
    ) -> Row:
        """Fetch exactly one row.

        Raises:
            RecordNotFoundError: If zero or several rows match
        """

    @abstractmethod
    async def insert(self, table: str, payload: Row, returning: str | None = None) -> Row | None:
        """Insert one row; return it (projected by ``returning``) when requested."""

    @abstractmethod
    async def update(self, table: str, payload: Row, filters: Filters) -> None:
        """Update rows matching all equality filters."""

    @abstractmethod
    async def delete(self, table: str, filters: Filters) -> None:
        """Delete rows matching all equality filters."""

    async def aclose(self) -> None:
        """Release any transport resources held by the gateway."""
