"""
Pydantic Schemas for Request/Response Validation

Request bodies are validated here before they reach the store. Field names
follow the wire format used by the web client (camelCase, ``userID``,
``menuID``), so documents are stored exactly as submitted.
"""

import math

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Annotated, Optional, List, Union
from datetime import datetime

from bistro.models import is_object_id


def _check_price(v: Union[float, str]) -> Union[float, str]:
    try:
        value = float(v)
    except ValueError:
        raise ValueError("price must be a number or a numeric string")
    if not math.isfinite(value):
        raise ValueError("price must be a finite number")
    return v


# Prices may arrive as numbers or numeric strings and are stored as sent.
Price = Annotated[
    Union[Annotated[float, Field(allow_inf_nan=False)], str],
    AfterValidator(_check_price),
]


def _check_object_ids(values: List[str], field: str) -> List[str]:
    bad = [v for v in values if not is_object_id(v)]
    if bad:
        raise ValueError(f"{field} contains invalid identifiers: {bad}")
    return values


# =============================================================================
# AUTH & USERS
# =============================================================================

class TokenRequest(BaseModel):
    """User payload signed into a bearer credential."""
    model_config = ConfigDict(extra="allow")

    uid: str = Field(..., min_length=1, examples=["kTq2x9Jd0rN3"])
    email: Optional[str] = Field(None, examples=["guest@bistro.dev"])


class TokenResponse(BaseModel):
    token: str


class UserCreate(BaseModel):
    """Sign-in registration. Extra profile fields are stored as sent."""
    model_config = ConfigDict(extra="allow")

    uid: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        if "@" not in v:
            raise ValueError("Invalid email format")
        return v

    def to_document(self) -> dict:
        """The stored user document. Identity and role are never client-supplied."""
        document = self.model_dump(exclude_none=True)
        document.pop("_id", None)
        document.pop("role", None)
        return document


class AdminCheckResponse(BaseModel):
    admin: bool


# =============================================================================
# MENU
# =============================================================================

class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Chocolate Lava Cake"])
    category: str = Field(..., min_length=1, max_length=50, examples=["dessert"])
    price: Price = Field(..., examples=[5.5])
    image: Optional[str] = Field(None, examples=["https://i.ibb.co/lava-cake.jpg"])
    recipe: Optional[str] = Field(None, max_length=1000)


class MenuItemUpdate(BaseModel):
    """Partial update; only fields present in the request are written."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    price: Optional[Price] = None
    image: Optional[str] = None
    recipe: Optional[str] = Field(None, max_length=1000)


# =============================================================================
# CARTS
# =============================================================================

class CartAdd(BaseModel):
    """
    Cart addition. The body (minus any quantity) is the upsert key, so
    clients must send the same shape for the same item.
    """
    model_config = ConfigDict(extra="allow")

    userID: str = Field(..., min_length=1)
    menuID: str = Field(...)

    @field_validator("menuID")
    @classmethod
    def validate_menu_id(cls, v: str) -> str:
        if not is_object_id(v):
            raise ValueError("menuID is not a valid identifier")
        return v

    def match_filter(self) -> dict:
        """The document filter identifying this cart entry."""
        body = self.model_dump(exclude_none=True)
        body.pop("quantity", None)
        body.pop("_id", None)
        return body


class CartCountResponse(BaseModel):
    count: int


# =============================================================================
# PAYMENTS
# =============================================================================

class PaymentIntentRequest(BaseModel):
    price: Price = Field(..., examples=[24.5])


class PaymentIntentResponse(BaseModel):
    clientSecret: str


class PaymentCreate(BaseModel):
    """
    Completed checkout. ``menuItemIds`` and ``quantities`` are paired by
    position and must be the same length.
    """
    model_config = ConfigDict(extra="allow")

    uid: str = Field(..., min_length=1)
    email: Optional[str] = None
    price: Price
    transactionId: Optional[str] = None
    cartIds: List[str] = Field(default_factory=list)
    menuItemIds: List[str] = Field(default_factory=list)
    quantities: List[int] = Field(default_factory=list)
    status: str = Field(default="pending")
    date: Optional[datetime] = None

    @field_validator("cartIds")
    @classmethod
    def validate_cart_ids(cls, v: List[str]) -> List[str]:
        return _check_object_ids(v, "cartIds")

    @field_validator("menuItemIds")
    @classmethod
    def validate_menu_item_ids(cls, v: List[str]) -> List[str]:
        return _check_object_ids(v, "menuItemIds")

    @field_validator("quantities")
    @classmethod
    def validate_quantities(cls, v: List[int]) -> List[int]:
        if any(q < 1 for q in v):
            raise ValueError("quantities must be positive")
        return v

    @model_validator(mode="after")
    def check_positional_pairing(self) -> "PaymentCreate":
        if len(self.menuItemIds) != len(self.quantities):
            raise ValueError(
                "menuItemIds and quantities must have the same length "
                f"({len(self.menuItemIds)} != {len(self.quantities)})"
            )
        return self

    def to_document(self) -> dict:
        """The stored payment document, without a client-supplied ``_id``."""
        document = self.model_dump(exclude_none=True)
        document.pop("_id", None)
        return document


class PaymentRecordResponse(BaseModel):
    paymentResult: dict
    deleteResult: dict


# =============================================================================
# STATISTICS
# =============================================================================

class SummaryStats(BaseModel):
    users: int
    menuItems: int
    orders: int
    revenue: float


class CategoryStats(BaseModel):
    category: Optional[str] = None
    quantity: int
    revenue: float


# =============================================================================
# SYSTEM
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    message: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    payment_service: str
    timestamp: datetime
