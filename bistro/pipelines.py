"""
Aggregation Pipelines

Builders for the MongoDB aggregation pipelines behind the cart view and the
admin statistics. Kept as plain functions returning stage lists so they can
be inspected without a database.
"""

from bistro.models import Collection


def _object_id(expr) -> dict:
    # Unconvertible references resolve to null and never join.
    return {
        "$convert": {
            "input": expr,
            "to": "objectId",
            "onError": None,
            "onNull": None,
        }
    }


def _number(expr) -> dict:
    return {
        "$convert": {
            "input": expr,
            "to": "double",
            "onError": 0,
            "onNull": 0,
        }
    }


def cart_projection_pipeline(user_id: str) -> list[dict]:
    """
    Join a user's cart entries to the current menu.

    Entries whose menu item no longer exists drop out of the ``$unwind``.
    Output rows: ``_id``, ``quantity``, ``name``, ``image``, ``price``.
    """
    return [
        {"$match": {"userID": user_id}},
        {"$addFields": {"menuObjectId": _object_id("$menuID")}},
        {
            "$lookup": {
                "from": Collection.MENU.value,
                "localField": "menuObjectId",
                "foreignField": "_id",
                "as": "menuItem",
            }
        },
        {"$unwind": "$menuItem"},
        {
            "$project": {
                "_id": 1,
                "quantity": 1,
                "name": "$menuItem.name",
                "image": "$menuItem.image",
                "price": "$menuItem.price",
            }
        },
    ]


def revenue_pipeline() -> list[dict]:
    """Total of all payment prices, string prices coerced."""
    return [
        {
            "$group": {
                "_id": None,
                "totalRevenue": {"$sum": _number("$price")},
            }
        },
    ]


def category_stats_pipeline() -> list[dict]:
    """
    Per-category quantity and revenue across all payments.

    Each payment's ``menuItemIds`` and ``quantities`` are zipped by position,
    every pair is joined to its menu item, and the pairs are grouped by the
    item's category.
    """
    return [
        {
            "$project": {
                "_id": 0,
                "pairs": {
                    "$zip": {"inputs": [
                        {"$ifNull": ["$menuItemIds", []]},
                        {"$ifNull": ["$quantities", []]},
                    ]}
                },
            }
        },
        {"$unwind": "$pairs"},
        {
            "$project": {
                "menuObjectId": _object_id({"$arrayElemAt": ["$pairs", 0]}),
                "quantity": {"$arrayElemAt": ["$pairs", 1]},
            }
        },
        {
            "$lookup": {
                "from": Collection.MENU.value,
                "localField": "menuObjectId",
                "foreignField": "_id",
                "as": "menuItem",
            }
        },
        {"$unwind": "$menuItem"},
        {
            "$group": {
                "_id": "$menuItem.category",
                "quantity": {"$sum": "$quantity"},
                "revenue": {
                    "$sum": {"$multiply": ["$quantity", _number("$menuItem.price")]}
                },
            }
        },
        {
            "$project": {
                "_id": 0,
                "category": "$_id",
                "quantity": 1,
                "revenue": 1,
            }
        },
        {"$sort": {"category": 1}},
    ]
