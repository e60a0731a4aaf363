"""
Mock Ordering Store Implementation

In-memory document store with the same semantics as the MongoDB store.
Used in development mode (ENV_MODE=development) to:
    - Run the complete API locally without a database
    - Back the test suite
    - Demo the frontend against seeded data

Behavior:
    - Documents are dicts keyed by ObjectId ``_id``
    - Every operation completes without awaiting, so each one is atomic
      with respect to other requests on the event loop
    - Returned documents are copies; callers cannot mutate stored state
"""

import copy
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from bson import ObjectId

from bistro.models import Collection, UserRole, is_object_id, to_number
from bistro.services.store.base import BaseOrderingStore, WriteResult

logger = logging.getLogger(__name__)


class MockOrderingStore(BaseOrderingStore):
    """
    In-memory implementation of the ordering store.

    Example:
        >>> store = MockOrderingStore()
        >>> await store.add_to_cart({"userID": "u1", "menuID": menu_id})
        >>> await store.add_to_cart({"userID": "u1", "menuID": menu_id})
        >>> await store.count_cart("u1")
        1
    """

    def __init__(self):
        self._collections: dict[Collection, dict[ObjectId, dict]] = {
            c: {} for c in Collection
        }
        logger.info("MockOrderingStore initialized")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "mock"

    async def health_check(self) -> bool:
        """The in-memory store is always available."""
        return True

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _docs(self, collection: Union[Collection, str]) -> dict[ObjectId, dict]:
        return self._collections[Collection(collection)]

    def _find(self, collection: Collection, query: dict) -> list[dict]:
        return [
            doc for doc in self._docs(collection).values()
            if all(doc.get(k) == v for k, v in query.items())
        ]

    def _insert(self, collection: Collection, document: dict) -> ObjectId:
        doc = copy.deepcopy(document)
        doc.setdefault("_id", ObjectId())
        self._docs(collection)[doc["_id"]] = doc
        return doc["_id"]

    def _delete_ids(self, collection: Collection, ids) -> int:
        docs = self._docs(collection)
        deleted = 0
        for _id in ids:
            if docs.pop(_id, None) is not None:
                deleted += 1
        return deleted

    def load(self, collection: Union[Collection, str], documents: list[dict]) -> int:
        """
        Insert documents directly, bypassing request validation.

        String ``_id`` values are converted to ObjectIds. Used to seed
        development data and test fixtures.

        Returns:
            Number of documents loaded
        """
        collection = Collection(collection)
        for document in documents:
            doc = dict(document)
            if is_object_id(doc.get("_id")):
                doc["_id"] = ObjectId(doc["_id"])
            self._insert(collection, doc)
        return len(documents)

    def load_file(self, path: Union[str, Path]) -> int:
        """
        Seed the store from a JSON file shaped ``{"menu": [...], ...}``.

        Unknown collection names raise ValueError.
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        total = 0
        for name, documents in data.items():
            count = self.load(name, documents)
            logger.info(f"Mock: Seeded {count} documents into {name}")
            total += count
        return total

    # =========================================================================
    # USERS
    # =========================================================================

    async def list_users(self) -> list[dict]:
        return copy.deepcopy(list(self._docs(Collection.USERS).values()))

    async def find_user(self, uid: str) -> Optional[dict]:
        matches = self._find(Collection.USERS, {"uid": uid})
        return copy.deepcopy(matches[0]) if matches else None

    async def register_user(self, user: dict) -> WriteResult:
        if self._find(Collection.USERS, {"uid": user["uid"]}):
            return WriteResult.for_update(matched=1, modified=0)
        inserted = self._insert(Collection.USERS, user)
        logger.info(f"Mock: Registered user {user['uid']}")
        return WriteResult.for_update(matched=0, modified=0, upserted_id=inserted)

    async def promote_user(self, user_id: ObjectId) -> WriteResult:
        user = self._docs(Collection.USERS).get(user_id)
        if user is None:
            return WriteResult.for_update(matched=0, modified=0)
        modified = int(user.get("role") != UserRole.ADMIN.value)
        user["role"] = UserRole.ADMIN.value
        return WriteResult.for_update(matched=1, modified=modified)

    async def delete_user(self, user_id: ObjectId) -> WriteResult:
        return WriteResult(deleted_count=self._delete_ids(Collection.USERS, [user_id]))

    # =========================================================================
    # MENU
    # =========================================================================

    async def list_menu(self, category: Optional[str] = None) -> list[dict]:
        items = self._docs(Collection.MENU).values()
        if category:
            needle = category.lower()
            items = [
                i for i in items
                if isinstance(i.get("category"), str) and needle in i["category"].lower()
            ]
        return copy.deepcopy(list(items))

    async def get_menu_item(self, item_id: ObjectId) -> Optional[dict]:
        return copy.deepcopy(self._docs(Collection.MENU).get(item_id))

    async def create_menu_item(self, item: dict) -> WriteResult:
        return WriteResult(inserted_id=self._insert(Collection.MENU, item))

    async def update_menu_item(self, item_id: ObjectId, changes: dict) -> WriteResult:
        item = self._docs(Collection.MENU).get(item_id)
        if item is None:
            return WriteResult.for_update(matched=0, modified=0)
        modified = int(any(item.get(k) != v for k, v in changes.items()))
        item.update(copy.deepcopy(changes))
        return WriteResult.for_update(matched=1, modified=modified)

    async def delete_menu_item(self, item_id: ObjectId) -> WriteResult:
        return WriteResult(deleted_count=self._delete_ids(Collection.MENU, [item_id]))

    # =========================================================================
    # CARTS
    # =========================================================================

    async def add_to_cart(self, entry: dict) -> WriteResult:
        matches = self._find(Collection.CARTS, entry)
        if matches:
            matches[0]["quantity"] = matches[0].get("quantity", 0) + 1
            return WriteResult.for_update(matched=1, modified=1)
        inserted = self._insert(Collection.CARTS, {**entry, "quantity": 1})
        return WriteResult.for_update(matched=0, modified=0, upserted_id=inserted)

    async def project_cart(self, user_id: str) -> list[dict]:
        menu = self._docs(Collection.MENU)
        rows = []
        for entry in self._find(Collection.CARTS, {"userID": user_id}):
            menu_id = entry.get("menuID")
            item = menu.get(ObjectId(menu_id)) if is_object_id(menu_id) else None
            if item is None:
                continue
            row = {"_id": entry["_id"]}
            if "quantity" in entry:
                row["quantity"] = entry["quantity"]
            for field in ("name", "image", "price"):
                if field in item:
                    row[field] = item[field]
            rows.append(copy.deepcopy(row))
        return rows

    async def count_cart(self, user_id: str) -> int:
        return len(self._find(Collection.CARTS, {"userID": user_id}))

    async def delete_cart_entry(self, entry_id: ObjectId, user_id: str) -> WriteResult:
        entry = self._docs(Collection.CARTS).get(entry_id)
        if entry is None or entry.get("userID") != user_id:
            return WriteResult(deleted_count=0)
        return WriteResult(deleted_count=self._delete_ids(Collection.CARTS, [entry_id]))

    # =========================================================================
    # PAYMENTS
    # =========================================================================

    async def list_payments(self, uid: str) -> list[dict]:
        payments = self._find(Collection.PAYMENTS, {"uid": uid})
        # ObjectIds are generated in increasing order, so _id order is insertion order
        payments.sort(key=lambda p: p["_id"], reverse=True)
        return copy.deepcopy(payments)

    async def record_payment(
        self,
        payment: dict,
        cart_ids: list[ObjectId],
    ) -> tuple[WriteResult, WriteResult]:
        document = dict(payment)
        document.setdefault("date", datetime.now(timezone.utc))
        carts = self._docs(Collection.CARTS)
        owned = [
            c for c in set(cart_ids)
            if c in carts and carts[c].get("userID") == payment.get("uid")
        ]
        deleted = self._delete_ids(Collection.CARTS, owned)
        inserted = self._insert(Collection.PAYMENTS, document)
        logger.info(
            f"Mock: Recorded payment {inserted} for {payment.get('uid')} "
            f"(cleared {deleted} cart entries)"
        )
        return WriteResult(inserted_id=inserted), WriteResult(deleted_count=deleted)

    # =========================================================================
    # STATISTICS
    # =========================================================================

    async def summary_stats(self) -> dict:
        payments = self._docs(Collection.PAYMENTS).values()
        return {
            "users": len(self._docs(Collection.USERS)),
            "menuItems": len(self._docs(Collection.MENU)),
            "orders": len(payments),
            "revenue": sum(to_number(p.get("price")) for p in payments),
        }

    async def category_stats(self) -> list[dict]:
        menu = self._docs(Collection.MENU)
        totals: dict[str, dict] = {}
        for payment in self._docs(Collection.PAYMENTS).values():
            pairs = zip(payment.get("menuItemIds") or [], payment.get("quantities") or [])
            for menu_id, quantity in pairs:
                item = menu.get(ObjectId(menu_id)) if is_object_id(menu_id) else None
                if item is None:
                    continue
                row = totals.setdefault(
                    item.get("category"),
                    {"category": item.get("category"), "quantity": 0, "revenue": 0},
                )
                row["quantity"] += quantity
                row["revenue"] += quantity * to_number(item.get("price"))
        # MongoDB sorts a missing category before any string
        return sorted(
            totals.values(),
            key=lambda r: (r["category"] is not None, str(r["category"])),
        )
