"""Client repository."""
from __future__ import annotations

import logging
from typing import Any, Optional

from models.client import Address, Client, ClientInput, ClientUpdate

from .database import Database, new_id, utcnow_iso
from .listing import ListEngine, ListPage, ResourceSpec
from .patch import UpdateStatement

logger = logging.getLogger(__name__)

CLIENTS = ResourceSpec(
    table="clients",
    filters={"status": "status"},
    default_limit=25,
    max_limit=100,
)

_ADDRESS_FIELDS = {"billing_address": "billing", "shipping_address": "shipping"}


def _client_columns(values: dict) -> dict:
    """
    Flatten address objects into their ``<kind>_address_<part>`` columns.
    An address is always written whole; parts left out become "".
    """
    columns = {}
    for key, value in values.items():
        if key in _ADDRESS_FIELDS:
            if value is not None:
                columns.update(Address.model_validate(value).columns(_ADDRESS_FIELDS[key]))
            continue
        columns[key] = value
    return columns


class ClientRepository:

    def __init__(self, db: Database) -> None:
        self.db = db
        self.engine = ListEngine(db)

    def get(self, client_id: str) -> Optional[Client]:
        row = self.db.query_one("SELECT * FROM clients WHERE id = ?", (client_id,))
        return Client.from_row(row) if row else None

    def list(
        self,
        *,
        status: Optional[str] = None,
        limit: Any = None,
        page_token: Optional[str] = None,
    ) -> tuple[list[Client], ListPage]:
        page = self.engine.fetch_page(
            CLIENTS, {"status": status}, limit=limit, page_token=page_token,
        )
        return [Client.from_row(r) for r in page.rows], page

    def create(self, data: ClientInput) -> Client:
        now = utcnow_iso()
        values = {
            "id": new_id(),
            **_client_columns(data.model_dump()),
            "created_at": now,
            "updated_at": now,
        }
        with self.db.transaction() as conn:
            conn.execute(
                f"INSERT INTO clients ({', '.join(values)}) "
                f"VALUES ({', '.join('?' for _ in values)})",
                list(values.values()),
            )
        logger.info("Client created: %s  %s", values["id"], data.company)
        return self.get(values["id"])

    def update(self, client_id: str, data: ClientUpdate) -> Optional[Client]:
        changes = _client_columns(data.model_dump(exclude_unset=True))
        with self.db.transaction() as conn:
            if conn.execute("SELECT 1 FROM clients WHERE id = ?", (client_id,)).fetchone() is None:
                return None
            conn.execute(*UpdateStatement("clients").set_many(changes).build(client_id, utcnow_iso()))
        logger.info("Client updated: %s  fields=%s", client_id, sorted(changes))
        return self.get(client_id)

    def delete(self, client_id: str) -> bool:
        """
        Delete a client.  Raises sqlite3.IntegrityError while purchases or
        invoices still reference it.
        """
        deleted = self.db.execute("DELETE FROM clients WHERE id = ?", (client_id,)) > 0
        if deleted:
            logger.info("Client deleted: %s", client_id)
        return deleted
