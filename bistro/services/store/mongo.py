"""
MongoDB Ordering Store Implementation

Production implementation on PyMongo's asyncio client.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - MONGODB_URL pointing at a replica set (payments use transactions)
    - MONGODB_DATABASE naming the database holding the four collections

The cart view and the statistics run as aggregation pipelines built in
``bistro.pipelines``; every other operation is a single collection call.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from pymongo import AsyncMongoClient, DESCENDING
from pymongo.asynchronous.client_session import AsyncClientSession
from pymongo.errors import PyMongoError
from pymongo.results import DeleteResult, InsertOneResult, UpdateResult

from bistro.models import Collection, UserRole
from bistro.pipelines import (
    cart_projection_pipeline,
    category_stats_pipeline,
    revenue_pipeline,
)
from bistro.services.store.base import BaseOrderingStore, WriteResult

logger = logging.getLogger(__name__)


def _from_update(result: UpdateResult) -> WriteResult:
    return WriteResult(
        acknowledged=result.acknowledged,
        matched_count=result.matched_count,
        modified_count=result.modified_count,
        upserted_count=1 if result.upserted_id is not None else 0,
        upserted_id=result.upserted_id,
    )


def _from_insert(result: InsertOneResult) -> WriteResult:
    return WriteResult(acknowledged=result.acknowledged, inserted_id=result.inserted_id)


def _from_delete(result: DeleteResult) -> WriteResult:
    return WriteResult(acknowledged=result.acknowledged, deleted_count=result.deleted_count)


class MongoOrderingStore(BaseOrderingStore):
    """
    MongoDB implementation of the ordering store.

    The client is created once and shared by every request; ``close`` must
    be awaited at shutdown.

    Example:
        >>> store = MongoOrderingStore("mongodb://localhost:27017", "bistroDb")
        >>> await store.connect()
        >>> await store.list_menu(category="salad")
    """

    def __init__(self, url: str, database: str, client: Optional[AsyncMongoClient] = None):
        self._client = client or AsyncMongoClient(url, tz_aware=True)
        self._db = self._client[database]
        self.users = self._db[Collection.USERS.value]
        self.menu = self._db[Collection.MENU.value]
        self.carts = self._db[Collection.CARTS.value]
        self.payments = self._db[Collection.PAYMENTS.value]

        logger.info(f"MongoOrderingStore initialized (database={database})")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "mongodb"

    async def connect(self) -> None:
        """Ensure indexes exist."""
        await self.users.create_index("uid", unique=True)
        await self.carts.create_index("userID")
        await self.payments.create_index([("uid", 1), ("_id", DESCENDING)])
        logger.info("MongoDB: Indexes ensured")

    async def close(self) -> None:
        await self._client.close()
        logger.info("MongoDB: Client closed")

    async def health_check(self) -> bool:
        try:
            await self._client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.error(f"MongoDB: Health check failed - {e}")
            return False

    # =========================================================================
    # USERS
    # =========================================================================

    async def list_users(self) -> list[dict]:
        return await self.users.find().to_list(length=None)

    async def find_user(self, uid: str) -> Optional[dict]:
        return await self.users.find_one({"uid": uid})

    async def register_user(self, user: dict) -> WriteResult:
        result = await self.users.update_one(
            {"uid": user["uid"]},
            {"$setOnInsert": user},
            upsert=True,
        )
        if result.upserted_id is not None:
            logger.info(f"MongoDB: Registered user {user['uid']}")
        return _from_update(result)

    async def promote_user(self, user_id: ObjectId) -> WriteResult:
        result = await self.users.update_one(
            {"_id": user_id},
            {"$set": {"role": UserRole.ADMIN.value}},
        )
        return _from_update(result)

    async def delete_user(self, user_id: ObjectId) -> WriteResult:
        return _from_delete(await self.users.delete_one({"_id": user_id}))

    # =========================================================================
    # MENU
    # =========================================================================

    async def list_menu(self, category: Optional[str] = None) -> list[dict]:
        query = {}
        if category:
            query["category"] = {"$regex": re.escape(category), "$options": "i"}
        return await self.menu.find(query).to_list(length=None)

    async def get_menu_item(self, item_id: ObjectId) -> Optional[dict]:
        return await self.menu.find_one({"_id": item_id})

    async def create_menu_item(self, item: dict) -> WriteResult:
        return _from_insert(await self.menu.insert_one(dict(item)))

    async def update_menu_item(self, item_id: ObjectId, changes: dict) -> WriteResult:
        result = await self.menu.update_one({"_id": item_id}, {"$set": changes})
        return _from_update(result)

    async def delete_menu_item(self, item_id: ObjectId) -> WriteResult:
        return _from_delete(await self.menu.delete_one({"_id": item_id}))

    # =========================================================================
    # CARTS
    # =========================================================================

    async def add_to_cart(self, entry: dict) -> WriteResult:
        # $inc on a missing document inserts the filter fields with quantity 1
        result = await self.carts.update_one(
            entry,
            {"$inc": {"quantity": 1}},
            upsert=True,
        )
        return _from_update(result)

    async def project_cart(self, user_id: str) -> list[dict]:
        cursor = await self.carts.aggregate(cart_projection_pipeline(user_id))
        return await cursor.to_list(length=None)

    async def count_cart(self, user_id: str) -> int:
        return await self.carts.count_documents({"userID": user_id})

    async def delete_cart_entry(self, entry_id: ObjectId, user_id: str) -> WriteResult:
        result = await self.carts.delete_one({"_id": entry_id, "userID": user_id})
        return _from_delete(result)

    # =========================================================================
    # PAYMENTS
    # =========================================================================

    async def list_payments(self, uid: str) -> list[dict]:
        cursor = self.payments.find({"uid": uid}).sort("_id", DESCENDING)
        return await cursor.to_list(length=None)

    async def record_payment(
        self,
        payment: dict,
        cart_ids: list[ObjectId],
    ) -> tuple[WriteResult, WriteResult]:
        document = dict(payment)
        document.setdefault("date", datetime.now(timezone.utc))

        async def clear_cart_and_insert(session: AsyncClientSession):
            deleted = await self.carts.delete_many(
                {"_id": {"$in": cart_ids}, "userID": payment["uid"]},
                session=session,
            )
            inserted = await self.payments.insert_one(document, session=session)
            return inserted, deleted

        async with self._client.start_session() as session:
            inserted, deleted = await session.with_transaction(clear_cart_and_insert)

        logger.info(
            f"MongoDB: Recorded payment {inserted.inserted_id} for "
            f"{payment.get('uid')} (cleared {deleted.deleted_count} cart entries)"
        )
        return _from_insert(inserted), _from_delete(deleted)

    # =========================================================================
    # STATISTICS
    # =========================================================================

    async def summary_stats(self) -> dict:
        users = await self.users.estimated_document_count()
        menu_items = await self.menu.estimated_document_count()
        orders = await self.payments.estimated_document_count()

        cursor = await self.payments.aggregate(revenue_pipeline())
        result = await cursor.to_list(length=None)
        revenue = result[0]["totalRevenue"] if result else 0

        return {
            "users": users,
            "menuItems": menu_items,
            "orders": orders,
            "revenue": revenue,
        }

    async def category_stats(self) -> list[dict]:
        cursor = await self.payments.aggregate(category_stats_pipeline())
        return await cursor.to_list(length=None)
