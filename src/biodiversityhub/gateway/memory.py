"""In-process gateway for local use and tests.

Rows live in plain dictionaries. The store mimics the parts of the hosted
backend the application relies on: server-assigned ids and timestamps,
not-null and foreign-key constraints, embedded relations in select lists,
and row-level security keyed on the session identity.
"""

import copy
import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from biodiversityhub.gateway.base import (
    DataGateway,
    Filters,
    GatewayError,
    RecordNotFoundError,
    Row,
    split_columns,
)

logger = logging.getLogger(__name__)

TABLES = ("profiles", "species", "comments")

# table -> {embedded table: local foreign key column}
FOREIGN_KEYS: dict[str, dict[str, str]] = {
    "species": {"profiles": "author"},
    "comments": {"profiles": "user_id", "species": "species_id"},
}

REQUIRED_COLUMNS: dict[str, tuple[str, ...]] = {
    "profiles": ("id", "display_name", "email"),
    "species": ("scientific_name", "kingdom", "author"),
    "comments": ("species_id", "user_id", "comment_text"),
}

KINGDOM_VALUES = ("Animalia", "Plantae", "Fungi", "Protista", "Archaea", "Bacteria")
ENUM_COLUMNS: dict[str, dict[str, tuple[str, ...]]] = {"species": {"kingdom": KINGDOM_VALUES}}

# Column holding the owner identity for row-level security
OWNER_COLUMNS = {"species": "author", "comments": "user_id"}

AUTO_ID_TABLES = ("species", "comments")
TIMESTAMPED_TABLES = ("comments",)

ROW_LEVEL_SECURITY_MESSAGE = 'new row violates row-level security policy for table "{table}"'


class InMemoryGateway(DataGateway):
    """DataGateway implementation holding all rows in memory."""

    def __init__(
        self,
        session_user_id: str | None = None,
        snapshot_path: Path | None = None,
        enforce_row_security: bool = True,
    ) -> None:
        """Initialize the store.

        Args:
            session_user_id: Identity treated as signed in, None for anonymous
            snapshot_path: Optional JSON file loaded on start and rewritten after every write
            enforce_row_security: Apply ownership policies on writes
        """
        self.session_user_id = session_user_id or None
        self.snapshot_path = snapshot_path
        self.enforce_row_security = enforce_row_security
        self.tables: dict[str, list[Row]] = {table: [] for table in TABLES}
        self._next_ids: dict[str, int] = {table: 1 for table in AUTO_ID_TABLES}

        if self.snapshot_path and self.snapshot_path.exists():
            self._load_snapshot(self.snapshot_path)

    # ==================== Session ====================

    def sign_in(self, user_id: str | None) -> None:
        """Switch the signed-in identity."""
        self.session_user_id = user_id or None

    async def get_session(self) -> str | None:
        """Return the signed-in identity."""
        return self.session_user_id

    # ==================== Seeding ====================

    def seed(self, table: str, rows: list[Row]) -> None:
        """Load rows directly, bypassing policies and constraints."""
        self._require_table(table)
        for row in rows:
            stored = copy.deepcopy(row)
            if table in AUTO_ID_TABLES:
                if "id" not in stored:
                    stored["id"] = self._next_ids[table]
                self._next_ids[table] = max(self._next_ids[table], stored["id"] + 1)
            self.tables[table].append(stored)

    # ==================== Reads ====================

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Filters | None = None,
        order_by: str | None = None,
        ascending: bool = True,
    ) -> list[Row]:
        """Fetch rows matching all equality filters."""
        rows = self._matching(table, filters)
        if order_by:
            # Nulls sort last in both directions, as in Postgres for descending order
            present = [row for row in rows if row.get(order_by) is not None]
            missing = [row for row in rows if row.get(order_by) is None]
            present.sort(key=lambda row: row[order_by], reverse=not ascending)
            rows = present + missing
        return [self._project(table, row, columns) for row in rows]

    async def select_single(
        self, table: str, columns: str = "*", filters: Filters | None = None
    ) -> Row:
        """Fetch exactly one row."""
        rows = self._matching(table, filters)
        if len(rows) != 1:
            raise RecordNotFoundError(
                "JSON object requested, multiple (or no) rows returned", status_code=406
            )
        return self._project(table, rows[0], columns)

    # ==================== Writes ====================

    async def insert(self, table: str, payload: Row, returning: str | None = None) -> Row | None:
        """Insert one row after constraint and policy checks."""
        self._require_table(table)
        row = copy.deepcopy(payload)
        self._check_owner(table, row)
        self._check_constraints(table, row)
        self._check_foreign_keys(table, row)

        if table in AUTO_ID_TABLES:
            row["id"] = self._next_ids[table]
            self._next_ids[table] += 1
        elif any(existing["id"] == row["id"] for existing in self.tables[table]):
            raise GatewayError(
                f'duplicate key value violates unique constraint "{table}_pkey"', status_code=409
            )
        if table in TIMESTAMPED_TABLES:
            now = datetime.now(UTC).isoformat()
            row.setdefault("created_at", now)
            row.setdefault("updated_at", now)

        self.tables[table].append(row)
        self._save_snapshot()
        logger.debug("Inserted %s row %s", table, row.get("id"))

        if returning is None:
            return None
        return self._project(table, row, returning)

    async def update(self, table: str, payload: Row, filters: Filters) -> None:
        """Update rows matching all equality filters that the session may write."""
        targets = self._writable(table, self._matching(table, filters))
        for row in targets:
            candidate = {**row, **copy.deepcopy(payload)}
            self._check_constraints(table, candidate)
            self._check_foreign_keys(table, candidate)
            if table in OWNER_COLUMNS and self.enforce_row_security:
                self._check_owner(table, candidate)
            if table in TIMESTAMPED_TABLES:
                candidate["updated_at"] = datetime.now(UTC).isoformat()
            row.clear()
            row.update(candidate)
        self._save_snapshot()

    async def delete(self, table: str, filters: Filters) -> None:
        """Delete rows matching all equality filters that the session may write."""
        targets = self._writable(table, self._matching(table, filters))
        target_ids = {id(row) for row in targets}
        if table == "species":
            species_ids = {row["id"] for row in targets}
            dependent = [c for c in self.tables["comments"] if c["species_id"] in species_ids]
            if dependent:
                raise GatewayError(
                    'update or delete on table "species" violates foreign key constraint '
                    '"comments_species_id_fkey" on table "comments"',
                    status_code=409,
                )
        self.tables[table] = [row for row in self.tables[table] if id(row) not in target_ids]
        self._save_snapshot()

    # ==================== Helpers ====================

    def _require_table(self, table: str) -> None:
        if table not in self.tables:
            raise GatewayError(f'relation "public.{table}" does not exist', status_code=404)

    def _matching(self, table: str, filters: Filters | None) -> list[Row]:
        self._require_table(table)
        filters = filters or {}
        return [
            row
            for row in self.tables[table]
            if all(row.get(column) == value for column, value in filters.items())
        ]

    def _writable(self, table: str, rows: list[Row]) -> list[Row]:
        """Drop rows the session does not own; RLS filters them out silently."""
        owner_column = OWNER_COLUMNS.get(table)
        if table == "profiles" and self.enforce_row_security:
            return [row for row in rows if row["id"] == self.session_user_id]
        if owner_column is None or not self.enforce_row_security:
            return rows
        return [row for row in rows if row.get(owner_column) == self.session_user_id]

    def _check_owner(self, table: str, row: Row) -> None:
        owner_column = OWNER_COLUMNS.get(table)
        if not self.enforce_row_security or owner_column is None:
            return
        if self.session_user_id is None or row.get(owner_column) != self.session_user_id:
            raise GatewayError(ROW_LEVEL_SECURITY_MESSAGE.format(table=table), status_code=403)

    def _check_constraints(self, table: str, row: Row) -> None:
        for column in REQUIRED_COLUMNS[table]:
            if row.get(column) is None:
                raise GatewayError(
                    f'null value in column "{column}" of relation "{table}" '
                    "violates not-null constraint",
                    status_code=400,
                )
        for column, allowed in ENUM_COLUMNS.get(table, {}).items():
            if row.get(column) not in allowed:
                raise GatewayError(
                    f'invalid input value for enum {column}: "{row.get(column)}"',
                    status_code=400,
                )

    def _check_foreign_keys(self, table: str, row: Row) -> None:
        for target, column in FOREIGN_KEYS.get(table, {}).items():
            value = row.get(column)
            if value is None:
                continue
            if not any(other["id"] == value for other in self.tables[target]):
                raise GatewayError(
                    f'insert or update on table "{table}" violates foreign key constraint '
                    f'"{table}_{column}_fkey"',
                    status_code=409,
                )

    def _project(self, table: str, row: Row, columns: str) -> Row:
        """Apply a PostgREST-style select list, resolving embedded relations."""
        result: Row = {}
        for part in split_columns(columns):
            if part == "*":
                result.update(copy.deepcopy(row))
            elif "(" in part:
                relation, inner = part.split("(", 1)
                relation = relation.strip()
                inner = inner.rsplit(")", 1)[0]
                result[relation] = self._embed(table, row, relation, inner)
            else:
                result[part] = copy.deepcopy(row.get(part))
        return result

    def _embed(self, table: str, row: Row, relation: str, columns: str) -> Row | None:
        column = FOREIGN_KEYS.get(table, {}).get(relation)
        if column is None:
            raise GatewayError(
                f"Could not find a relationship between '{table}' and '{relation}'",
                status_code=400,
            )
        value = row.get(column)
        for other in self.tables[relation]:
            if other["id"] == value:
                return self._project(relation, other, columns or "*")
        return None

    def _load_snapshot(self, path: Path) -> None:
        data = json.loads(path.read_text())
        for table in TABLES:
            self.tables[table] = []
            self.seed(table, data.get(table, []))
        logger.info("Loaded catalog snapshot from %s", path)

    def _save_snapshot(self) -> None:
        if self.snapshot_path is None:
            return
        self.snapshot_path.parent.mkdir(parents=True, exist_ok=True)
        self.snapshot_path.write_text(json.dumps(self.tables, indent=2, default=_json_default))


def _json_default(value: Any) -> str:  # noqa: ANN401
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
