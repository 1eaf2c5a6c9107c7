"""Storage layer: connection pool, item and social post persistence, change events."""

from jet_tracker.storage.database import Database, get_database
from jet_tracker.storage.notifications import StoreChange, StoreChangeNotifier
from jet_tracker.storage.repository import ItemRepository, SocialPostRepository, StoredItem

__all__ = [
    "Database",
    "get_database",
    "ItemRepository",
    "SocialPostRepository",
    "StoreChange",
    "StoreChangeNotifier",
    "StoredItem",
]
