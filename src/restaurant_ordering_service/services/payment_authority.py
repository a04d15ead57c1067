"""Client for the external payment authority (Stripe)."""

import logging
from decimal import ROUND_HALF_UP, Decimal

import stripe

from restaurant_ordering_service.exceptions import UpstreamPaymentFailure
from restaurant_ordering_service.models.payment_models import PaymentIntentResponse

logger = logging.getLogger(__name__)


def to_minor_units(price: Decimal) -> int:
    """Convert an amount in major currency units to the integer minor units Stripe expects."""
    return int((price * 100).to_integral_value(rounding=ROUND_HALF_UP))


class PaymentAuthorityClient:
    """Creates payment intents with Stripe.

    The service never sees card data: the client secret returned here is used by the
    browser to confirm the charge, and only the resulting transaction id comes back.
    """

    def __init__(
        self,
        secret_key: str,
        currency: str = "usd",
        client: stripe.StripeClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            secret_key: Stripe secret API key
            currency: ISO currency code for intents
            client: Preconfigured Stripe client, mainly for tests
        """
        self.currency = currency
        self.client = client or stripe.StripeClient(secret_key, http_client=stripe.HTTPXClient())

    async def create_payment_intent(
        self, price: Decimal, email: str | None = None
    ) -> PaymentIntentResponse:
        """Authorize a card charge for ``price``.

        Args:
            price: Amount in major currency units
            email: Paying user, recorded as intent metadata

        Returns:
            PaymentIntentResponse with the client secret

        Raises:
            UpstreamPaymentFailure: If Stripe rejects the request or cannot be reached
        """
        amount = to_minor_units(price)
        params: dict = {
            "amount": amount,
            "currency": self.currency,
            "payment_method_types": ["card"],
        }
        if email:
            params["metadata"] = {"email": email}

        try:
            intent = await self.client.payment_intents.create_async(params=params)
        except stripe.StripeError as e:
            logger.error(f"Payment intent creation failed: {type(e).__name__}: {e}")
            status = e.http_status if e.http_status and 400 <= e.http_status < 500 else None
            raise UpstreamPaymentFailure(
                e.user_message or "Payment authority error", status_code=status
            ) from e

        logger.info(f"Created payment intent {intent.id} for {amount} {self.currency}")
        return PaymentIntentResponse(
            client_secret=intent.client_secret,
            payment_intent_id=intent.id,
            amount=amount,
        )
