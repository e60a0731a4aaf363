"""
Mock Payment Service Implementation

Simulates Stripe payment intents without making real API calls.
Used in development mode (ENV_MODE=development) to:
    - Run the checkout flow locally
    - Back the test suite
    - Develop without internet connectivity

Behavior:
    - Simulates response times (configurable, 0 disables the delay)
    - Rejects non-positive amounts like Stripe does
    - Generates Stripe-like IDs and client secrets (pi_xxx_secret_xxx)
"""

import asyncio
import random
import uuid
import logging
from typing import Optional

from bistro.services.payment.base import BasePaymentService, PaymentResult

logger = logging.getLogger(__name__)


class MockPaymentService(BasePaymentService):
    """
    Mock implementation of the payment service.

    Attributes:
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds
        currency: Default currency code

    Example:
        >>> service = MockPaymentService(min_latency=0, max_latency=0)
        >>> result = await service.create_payment_intent(24.50)
        >>> result.client_secret
        'pi_mock_..._secret_mock'
    """

    def __init__(
        self,
        min_latency: float = 0.05,
        max_latency: float = 0.2,
        currency: str = "usd",
    ):
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.currency = currency

        logger.info(
            f"MockPaymentService initialized "
            f"(latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "mock"

    def _generate_payment_intent_id(self) -> str:
        """Generate a Stripe-like payment intent ID."""
        return f"pi_mock_{uuid.uuid4().hex[:24]}"

    async def _simulate_latency(self) -> float:
        """
        Simulate network latency.

        Returns:
            float: Actual latency in milliseconds
        """
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency > 0:
            await asyncio.sleep(latency)
        return latency * 1000

    async def create_payment_intent(
        self,
        amount: float,
        currency: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        """
        Simulate creating a payment intent.

        The client secret is fake and won't work with Stripe.js.
        """
        currency = currency or self.currency

        if self.to_cents(amount) <= 0:
            return PaymentResult(
                success=False,
                amount=amount,
                currency=currency,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
            )

        latency_ms = await self._simulate_latency()
        payment_intent_id = self._generate_payment_intent_id()

        logger.debug(f"Mock: Created payment intent {payment_intent_id} - ${amount:.2f}")

        return PaymentResult(
            success=True,
            payment_intent_id=payment_intent_id,
            client_secret=f"{payment_intent_id}_secret_mock",
            amount=amount,
            currency=currency,
            response_time_ms=latency_ms,
        )

    async def health_check(self) -> bool:
        """The mock service is always available."""
        logger.debug("Mock: Health check passed")
        return True
