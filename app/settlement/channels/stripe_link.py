"""
Stripe Payment Links settlement channel.

All Stripe calls of the settlement app go through this class to get
consistent timeouts, error translation, idempotency and logging.

Features:
- Bounded timeout on every API call (STRIPE_API_TIMEOUT_SECONDS)
- Idempotency keys derived from the entry id, so a retried link creation
  returns the objects Stripe already created
- Stripe errors translated to ChannelUnavailableError (entry untouched)
- Structured logging with timing metrics

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MAX_RETRIES: SDK network retries (default: 2)
- STRIPE_PAYMENT_METHOD_TYPES: Methods offered on links
- FRONTEND_URL: Redirect target after payment

Usage:
    from settlement.channels import get_settlement_channel

    channel = get_settlement_channel()
    link = channel.create_payment_link(entry, {"email": "payer@example.com"})
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import TYPE_CHECKING, Any, NoReturn

import stripe
from django.conf import settings

from settlement.exceptions import ChannelUnavailableError, InvalidSignatureError
from settlement.types import PaymentLink

if TYPE_CHECKING:
    from settlement.models import LedgerEntry


class IdempotencyKeyGenerator:
    """
    Idempotency keys for link creation.

    Format: "payment_link:{entry_id}:{step}:{hash}"

    The hash covers the request parameters. A retry with the same
    parameters reuses the objects an earlier attempt created (one that timed
    out on our side but succeeded at Stripe); a request whose parameters
    differ, such as a different payer email in the metadata, gets a key of
    its own instead of being rejected by Stripe as a mismatched replay.
    """

    @staticmethod
    def generate(step: str, entry_id: Any, params: dict[str, Any] | None = None) -> str:
        digest = hashlib.sha256(
            json.dumps(params or {}, sort_keys=True, default=str).encode()
        ).hexdigest()[:12]
        return f"payment_link:{entry_id}:{step}:{digest}"


class StripePaymentLinkChannel:
    """
    Hosted payment link channel backed by Stripe.

    Instances are cheap and hold their own configuration; build one per use
    through get_settlement_channel() or inject a fake in tests.
    """

    name = "stripe_payment_link"

    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        timeout: int | None = None,
        max_retries: int | None = None,
        payment_method_types: list[str] | None = None,
        currency: str | None = None,
        frontend_url: str | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.STRIPE_SECRET_KEY
        self.webhook_secret = (
            webhook_secret if webhook_secret is not None else settings.STRIPE_WEBHOOK_SECRET
        )
        self.timeout = timeout or settings.STRIPE_API_TIMEOUT_SECONDS
        self.max_retries = (
            max_retries if max_retries is not None else settings.STRIPE_MAX_RETRIES
        )
        self.offered_method_types = payment_method_types or list(
            settings.STRIPE_PAYMENT_METHOD_TYPES
        )
        self.currency = currency or settings.SETTLEMENT_CURRENCY
        self.frontend_url = (frontend_url or settings.FRONTEND_URL).rstrip("/")

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _configure_stripe(self) -> None:
        """Apply timeout and retry policy to the Stripe SDK."""
        stripe.default_http_client = stripe.RequestsClient(timeout=self.timeout)
        stripe.max_network_retries = self.max_retries

    # =========================================================================
    # Payment Links
    # =========================================================================

    def create_payment_link(
        self,
        entry: LedgerEntry,
        payer_info: dict[str, Any] | None = None,
    ) -> PaymentLink:
        """
        Create product → price → payment link for an entry.

        The link carries the entry id in its metadata (copied by Stripe onto
        the checkout session) so the webhook can find the entry again.

        Raises:
            ChannelUnavailableError: Stripe not configured or call failed
        """
        logger = self.get_logger()
        if not self.is_configured:
            logger.warning(
                "Payment link requested but Stripe is not configured",
                extra={"entry_id": str(entry.id)},
            )
            raise ChannelUnavailableError(
                "Online payments are not configured",
                details={"channel": self.name},
            )

        payer_info = payer_info or {}
        metadata = {
            "ledger_entry_id": str(entry.id),
            "invoice_number": entry.invoice_number,
        }
        if entry.appointment_id:
            metadata["appointment_id"] = str(entry.appointment_id)
        if payer_info.get("email"):
            metadata["customer_email"] = payer_info["email"]

        log_context = {
            "entry_id": str(entry.id),
            "amount_cents": entry.amount_cents,
            "currency": self.currency,
        }
        self._configure_stripe()
        start_time = time.perf_counter()

        try:
            product_params = {
                "name": entry.description or f"Invoice {entry.invoice_number}",
                "metadata": metadata,
            }
            product = stripe.Product.create(
                api_key=self.api_key,
                idempotency_key=IdempotencyKeyGenerator.generate("product", entry.id, product_params),
                **product_params,
            )
            price_params = {
                "product": product["id"],
                "unit_amount": entry.amount_cents,
                "currency": self.currency,
            }
            price = stripe.Price.create(
                api_key=self.api_key,
                idempotency_key=IdempotencyKeyGenerator.generate("price", entry.id, price_params),
                **price_params,
            )
            link_params = {
                "line_items": [{"price": price["id"], "quantity": 1}],
                "metadata": metadata,
                "payment_intent_data": {"metadata": metadata},
                "payment_method_types": self.offered_method_types,
                "after_completion": {
                    "type": "redirect",
                    "redirect": {
                        "url": f"{self.frontend_url}/payment/success"
                        "?session_id={CHECKOUT_SESSION_ID}",
                    },
                },
            }
            link = stripe.PaymentLink.create(
                api_key=self.api_key,
                idempotency_key=IdempotencyKeyGenerator.generate("link", entry.id, link_params),
                **link_params,
            )
        except stripe.StripeError as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self._handle_stripe_error(e, log_context, duration_ms)

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Payment link created",
            extra={**log_context, "link_id": link["id"], "duration_ms": duration_ms},
        )
        return PaymentLink(url=link["url"], link_id=link["id"], metadata=metadata)

    # =========================================================================
    # Webhooks
    # =========================================================================

    def verify_webhook(self, payload: bytes, signature: str) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Raises:
            InvalidSignatureError: Missing secret, missing header or bad signature
        """
        if not self.webhook_secret:
            self.get_logger().error("STRIPE_WEBHOOK_SECRET is not configured")
            raise InvalidSignatureError("Webhook verification is not configured")
        if not signature:
            raise InvalidSignatureError("Missing Stripe-Signature header")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise InvalidSignatureError(
                "Invalid webhook signature",
                details={"error": str(e)},
            )
        except ValueError:
            raise InvalidSignatureError("Malformed webhook payload")

        return json.loads(payload)

    def payment_method_types(self, session: dict[str, Any]) -> list[str]:
        """
        Payment method types used to pay a checkout session.

        Reads the charge behind the session's PaymentIntent. If Stripe cannot
        be reached the session's offered types are used instead, which the
        classification precedence then resolves.
        """
        offered = list(session.get("payment_method_types") or [])
        intent_id = session.get("payment_intent")
        if not intent_id or not self.is_configured:
            return offered

        self._configure_stripe()
        try:
            intent = stripe.PaymentIntent.retrieve(
                intent_id,
                api_key=self.api_key,
                expand=["latest_charge"],
            )
        except stripe.StripeError:
            self.get_logger().warning(
                "Could not retrieve PaymentIntent, classifying from session",
                extra={"payment_intent": intent_id},
                exc_info=True,
            )
            return offered

        charge = intent.get("latest_charge") if hasattr(intent, "get") else None
        details = charge.get("payment_method_details") if hasattr(charge, "get") else None
        used = details.get("type") if hasattr(details, "get") else None
        return [used] if used else offered

    # =========================================================================
    # Error Handling
    # =========================================================================

    def _handle_stripe_error(
        self,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> NoReturn:
        """
        Translate Stripe exceptions to ChannelUnavailableError.

        Every failure leaves the entry unchanged and is safe to retry with the
        same idempotency keys; the error code tells the caller which kind.
        """
        logger = self.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.APIConnectionError):
            logger.error("Connection error to Stripe", extra=log_context, exc_info=True)
            raise ChannelUnavailableError(
                "Could not reach the payment provider. Please retry.",
                details={"channel": self.name, "reason": "connection"},
            )
        if isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise ChannelUnavailableError(
                "Payment provider is busy. Please retry.",
                details={"channel": self.name, "reason": "rate_limited"},
            )
        if isinstance(error, stripe.AuthenticationError):
            logger.critical("Stripe authentication failed - check API key", extra=log_context)
            raise ChannelUnavailableError(
                "Online payments are not configured",
                details={"channel": self.name, "reason": "authentication"},
            )
        if isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": getattr(error, "code", None)},
            )
            raise ChannelUnavailableError(
                "Payment provider rejected the request",
                details={"channel": self.name, "reason": "invalid_request"},
            )

        logger.error(
            f"Stripe error: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise ChannelUnavailableError(
            "Payment provider error. Please retry.",
            details={"channel": self.name, "reason": "provider_error"},
        )
