"""
Document Store Abstract Base Class

Defines the interface contract for the ordering store. Both
MockOrderingStore (in-memory) and MongoOrderingStore implement these
methods, so request handlers behave identically against either backend.

Documents cross this boundary as plain dicts with ObjectId ``_id`` values;
mutations return a WriteResult mirroring the store's acknowledgment.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from typing import Any, Optional

from bson import ObjectId


@dataclass
class WriteResult:
    """
    Acknowledgment of a store mutation.

    Only the counters relevant to the operation are set; ``to_dict`` omits
    the rest, so an insert reports ``insertedId`` while an update reports
    ``matchedCount``/``modifiedCount``/``upsertedId``.
    """
    acknowledged: bool = True
    inserted_id: Optional[Any] = None
    matched_count: Optional[int] = None
    modified_count: Optional[int] = None
    upserted_count: Optional[int] = None
    upserted_id: Optional[Any] = None
    deleted_count: Optional[int] = None

    _WIRE_NAMES = {
        "acknowledged": "acknowledged",
        "inserted_id": "insertedId",
        "matched_count": "matchedCount",
        "modified_count": "modifiedCount",
        "upserted_count": "upsertedCount",
        "upserted_id": "upsertedId",
        "deleted_count": "deletedCount",
    }

    @classmethod
    def for_update(
        cls,
        matched: int,
        modified: int,
        upserted_id: Optional[Any] = None,
    ) -> "WriteResult":
        return cls(
            matched_count=matched,
            modified_count=modified,
            upserted_count=1 if upserted_id is not None else 0,
            upserted_id=upserted_id,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "upserted_id" and self.matched_count is not None:
                # Updates always report upsertedId, null when nothing was inserted
                result[self._WIRE_NAMES[f.name]] = _wire_id(value)
                continue
            if value is None:
                continue
            result[self._WIRE_NAMES[f.name]] = _wire_id(value)
        return result


def _wire_id(value: Any) -> Any:
    return str(value) if isinstance(value, ObjectId) else value


class BaseOrderingStore(ABC):
    """
    Abstract base class for the ordering document store.

    Holds four collections: users, menu, carts and payments. The cart
    projection and order statistics are the only operations that combine
    collections.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the backing store (e.g. "mock", "mongodb")."""
        pass

    async def connect(self) -> None:
        """Prepare the store for use. Called once at startup."""

    async def close(self) -> None:
        """Release store resources. Called once at shutdown."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify the store is reachable."""
        pass

    # =========================================================================
    # USERS
    # =========================================================================

    @abstractmethod
    async def list_users(self) -> list[dict]:
        pass

    @abstractmethod
    async def find_user(self, uid: str) -> Optional[dict]:
        """Find a user by external identifier."""
        pass

    @abstractmethod
    async def register_user(self, user: dict) -> WriteResult:
        """
        Insert a user unless one with the same ``uid`` exists.

        Repeated calls for the same ``uid`` match the existing document and
        change nothing.
        """
        pass

    @abstractmethod
    async def promote_user(self, user_id: ObjectId) -> WriteResult:
        """Set ``role`` to admin on the user with this document id."""
        pass

    @abstractmethod
    async def delete_user(self, user_id: ObjectId) -> WriteResult:
        pass

    # =========================================================================
    # MENU
    # =========================================================================

    @abstractmethod
    async def list_menu(self, category: Optional[str] = None) -> list[dict]:
        """
        List menu items.

        Args:
            category: Case-insensitive substring matched against the item's
                category. None returns every item.
        """
        pass

    @abstractmethod
    async def get_menu_item(self, item_id: ObjectId) -> Optional[dict]:
        pass

    @abstractmethod
    async def create_menu_item(self, item: dict) -> WriteResult:
        pass

    @abstractmethod
    async def update_menu_item(self, item_id: ObjectId, changes: dict) -> WriteResult:
        """Set the given fields on one menu item."""
        pass

    @abstractmethod
    async def delete_menu_item(self, item_id: ObjectId) -> WriteResult:
        pass

    # =========================================================================
    # CARTS
    # =========================================================================

    @abstractmethod
    async def add_to_cart(self, entry: dict) -> WriteResult:
        """
        Add one unit to a cart entry in a single atomic upsert.

        ``entry`` is both the match filter and the inserted document: an
        existing match has its quantity incremented by 1, otherwise the
        entry is inserted with quantity 1.
        """
        pass

    @abstractmethod
    async def project_cart(self, user_id: str) -> list[dict]:
        """
        Return a user's cart entries joined to the current menu.

        Each row carries the entry's ``_id`` and ``quantity`` plus the menu
        item's ``name``, ``image`` and ``price``. Entries referencing a
        deleted menu item are left out.
        """
        pass

    @abstractmethod
    async def count_cart(self, user_id: str) -> int:
        pass

    @abstractmethod
    async def delete_cart_entry(self, entry_id: ObjectId, user_id: str) -> WriteResult:
        """Delete one cart entry owned by ``user_id``."""
        pass

    # =========================================================================
    # PAYMENTS
    # =========================================================================

    @abstractmethod
    async def list_payments(self, uid: str) -> list[dict]:
        """A user's payment records, newest first."""
        pass

    @abstractmethod
    async def record_payment(
        self,
        payment: dict,
        cart_ids: list[ObjectId],
    ) -> tuple[WriteResult, WriteResult]:
        """
        Delete the listed cart entries owned by the payer and insert the
        payment record as one atomic unit.

        Returns:
            (insert acknowledgment, delete acknowledgment)
        """
        pass

    # =========================================================================
    # STATISTICS
    # =========================================================================

    @abstractmethod
    async def summary_stats(self) -> dict:
        """
        Collection counts and total revenue.

        Returns:
            dict with ``users``, ``menuItems``, ``orders`` and ``revenue``
        """
        pass

    @abstractmethod
    async def category_stats(self) -> list[dict]:
        """
        Ordered quantity and revenue per menu category.

        Returns:
            Rows of ``{"category", "quantity", "revenue"}`` sorted by
            category; categories without orders are absent.
        """
        pass
