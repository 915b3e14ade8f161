"""
Stripe Payment Service for ReturnIt

Creates PaymentIntents for the customer checkout. The client confirms the
intent with the returned client secret; card data never reaches us.
API Reference: https://docs.stripe.com/api/payment_intents/create
"""

import logging
import requests
from decimal import Decimal, ROUND_HALF_UP
from django.conf import settings

logger = logging.getLogger(__name__)


class PaymentProviderError(Exception):
    """Raised when the payment provider rejects or fails a request."""


class StripePaymentService:
    """
    Stripe REST integration (form-encoded, bearer secret key).
    """

    TIMEOUT = 15

    @staticmethod
    def to_cents(amount: Decimal) -> int:
        """Dollars → integer cents, rounded half-up."""
        return int((Decimal(str(amount)) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))

    @classmethod
    def create_payment_intent(cls, amount: Decimal, order_id: str = '', currency: str = 'usd') -> dict:
        """
        Create a PaymentIntent.

        Args:
            amount: Amount in dollars (must be positive)
            order_id: Client order reference, stored in intent metadata
            currency: ISO currency code

        Returns:
            Dict with id, client_secret, amount (cents), status

        Raises:
            ValueError: Non-positive amount
            PaymentProviderError: Missing credentials, network or API error
        """
        amount_cents = cls.to_cents(amount)
        if amount_cents <= 0:
            raise ValueError("Amount must be greater than zero")

        secret_key = settings.STRIPE_SECRET_KEY
        if not secret_key:
            logger.error("[STRIPE] Missing STRIPE_SECRET_KEY")
            raise PaymentProviderError("Payment provider is not configured")

        url = f"{settings.STRIPE_API_BASE.rstrip('/')}/v1/payment_intents"
        payload = {
            'amount': amount_cents,
            'currency': currency,
            'automatic_payment_methods[enabled]': 'true',
        }
        if order_id:
            payload['metadata[orderId]'] = str(order_id)

        try:
            response = requests.post(
                url,
                data=payload,
                headers={'Authorization': f'Bearer {secret_key}'},
                timeout=cls.TIMEOUT
            )
        except requests.RequestException as e:
            logger.error(f"[STRIPE] Request failed: {e}")
            raise PaymentProviderError("Payment provider unavailable") from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.status_code >= 400:
            error = data.get('error')
            message = error.get('message') if isinstance(error, dict) else None
            message = message or f'HTTP {response.status_code}'
            logger.error(f"[STRIPE] PaymentIntent rejected for order {order_id}: {message}")
            raise PaymentProviderError(message)

        if not data.get('id') or not data.get('client_secret'):
            logger.error(f"[STRIPE] Malformed PaymentIntent response for order {order_id}")
            raise PaymentProviderError("Invalid response from payment provider")

        logger.info(f"[STRIPE] PaymentIntent {data.get('id')} created: {amount_cents} {currency} order={order_id}")
        return {
            'id': data['id'],
            'client_secret': data['client_secret'],
            'amount': data.get('amount', amount_cents),
            'status': data.get('status', ''),
        }
