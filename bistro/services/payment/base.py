"""
Payment Service Abstract Base Class

Defines the interface contract for payment service implementations.
MockPaymentService and StripePaymentService both implement it, so the
checkout flow is identical regardless of which one is active.

The API only issues payment intents: the browser confirms the card with
the returned client secret and then records the payment through
``POST /payments``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class PaymentResult:
    """
    Standardized result from the payment provider.

    Attributes:
        success: Whether the intent was created
        payment_intent_id: Provider identifier (Stripe format: pi_xxx)
        client_secret: Secret the frontend uses to confirm the payment
        amount: Amount in dollars
        currency: Currency code (e.g., "usd")
        error_message: Error description if the request failed
        error_code: Machine-readable error code
        response_time_ms: Time taken by the provider
    """
    success: bool
    payment_intent_id: Optional[str] = None
    client_secret: Optional[str] = None
    amount: Optional[float] = None
    currency: str = "usd"
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0


class BasePaymentService(ABC):
    """
    Abstract base class for payment services.

    Example:
        >>> service = get_payment_service()  # Returns Mock or Stripe
        >>> result = await service.create_payment_intent(amount=24.50)
        >>> if result.success:
        ...     print(result.client_secret)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the payment provider.

        Returns:
            str: Provider name (e.g., "mock", "stripe")
        """
        pass

    @staticmethod
    def to_cents(amount: float) -> int:
        """
        Convert a dollar amount to cents.

        Providers expect the smallest currency unit (cents for USD).
        """
        return int(round(amount * 100))

    @abstractmethod
    async def create_payment_intent(
        self,
        amount: float,
        currency: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        """
        Create a payment intent for client-side confirmation.

        Args:
            amount: Amount in dollars
            currency: Currency code (provider default when None)
            metadata: Additional data to attach

        Returns:
            PaymentResult: Carries the client_secret for the frontend
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify connectivity to the payment service.

        Returns:
            bool: True if service is reachable and operational
        """
        pass
