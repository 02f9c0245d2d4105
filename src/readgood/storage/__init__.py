"""Storage layer — SQLite database access, schema, item store, and fetch ledger."""

from readgood.storage.connection import get_connection
from readgood.storage.item_store import ItemStore
from readgood.storage.ledger import FetchLedger, FetchRecord
from readgood.storage.schema import init_db

__all__ = ["FetchLedger", "FetchRecord", "ItemStore", "get_connection", "init_db"]
