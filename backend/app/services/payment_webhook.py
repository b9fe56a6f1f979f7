"""
YooMoney payment notification handling.

STATE MACHINE
=============

Each notification runs through a single pass, and every exit is an explicit
outcome value that maps to one HTTP status:

  received --secret configured?--> no  -> SECRET_MISSING     (500)
  received --parse form-----------> bad -> MALFORMED         (403)
  parsed   --sha1 matches?--------> no  -> FORGED            (403)
  authenticated --storage?--------> no  -> STORE_UNAVAILABLE (500)
  authenticated --label?----------> no  -> NO_TARGET         (200)
  has_target --update row---------> err -> STORE_ERROR       (500)
                                    none -> NO_TARGET        (200)
                                    ok  -> UPDATED           (200)

Nothing is retried or queued here. YooMoney redelivers any notification that
did not get a 2xx, and the pending -> paid write is idempotent, so
redelivery is the retry policy.

A transfer smaller than the event price still confirms the registration
and is logged as `payment_amount_below_price` for the organizer to settle.

SIGNATURE
=========

  sha1("notification_type&operation_id&amount&currency&datetime&sender&codepro&<secret>&label")

rendered as lowercase hex and compared case-sensitively with `sha1_hash`.
YooMoney always signs `label`, sending it empty when the payment had none,
so a missing label signs as the empty string. Any other missing signed
field means the notification cannot be authenticated.
"""

import asyncio
import enum
import hashlib
import hmac
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from app.core.logging import get_logger
from app.core.metrics import record_webhook_outcome
from app.services.payment_links import parse_label
from app.services.registration_store import RegistrationStore

logger = get_logger(__name__)

SIGNED_FIELDS = (
    "notification_type",
    "operation_id",
    "amount",
    "currency",
    "datetime",
    "sender",
    "codepro",
)


class WebhookOutcome(str, enum.Enum):
    UPDATED = "updated"
    NO_TARGET = "no_target"
    MALFORMED = "malformed"
    FORGED = "forged"
    SECRET_MISSING = "secret_missing"
    STORE_UNAVAILABLE = "store_unavailable"
    STORE_ERROR = "store_error"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    WebhookOutcome.UPDATED: 200,
    WebhookOutcome.NO_TARGET: 200,
    WebhookOutcome.MALFORMED: 403,
    WebhookOutcome.FORGED: 403,
    WebhookOutcome.SECRET_MISSING: 500,
    WebhookOutcome.STORE_UNAVAILABLE: 500,
    WebhookOutcome.STORE_ERROR: 500,
}


@dataclass(frozen=True)
class WebhookResult:
    outcome: WebhookOutcome
    message: str
    registration_id: Optional[int] = None

    @property
    def status_code(self) -> int:
        return self.outcome.status_code


@dataclass(frozen=True)
class PaymentNotification:
    notification_type: str
    operation_id: str
    amount: str
    currency: str
    datetime: str
    sender: str
    codepro: str
    sha1_hash: str
    label: Optional[str] = None
    unaccepted: Optional[str] = None
    # Amount debited from the sender; `amount` is what arrives after commission
    withdraw_amount: Optional[str] = None


def parse_notification(form: Mapping[str, Any]) -> Optional[PaymentNotification]:
    """Typed notification from a decoded form body, or None if a required field is absent."""
    values = {}
    for name in SIGNED_FIELDS + ("sha1_hash",):
        value = form.get(name)
        if value is None or not isinstance(value, str):
            return None
        values[name] = value

    optional = {}
    for name in ("label", "unaccepted", "withdraw_amount"):
        value = form.get(name)
        optional[name] = value if isinstance(value, str) else None
    return PaymentNotification(**values, **optional)


def signing_string(notification: PaymentNotification, secret: str) -> str:
    parts = [getattr(notification, name) for name in SIGNED_FIELDS]
    parts.append(secret)
    parts.append(notification.label or "")
    return "&".join(parts)


def compute_signature(notification: PaymentNotification, secret: str) -> str:
    return hashlib.sha1(signing_string(notification, secret).encode("utf-8")).hexdigest()


def covers_price(notification: PaymentNotification, price: int) -> bool:
    """Whether the sender paid at least `price` rubles. Unreadable amounts do not."""
    try:
        paid = Decimal(notification.withdraw_amount or notification.amount)
    except InvalidOperation:
        return False
    return paid.is_finite() and paid >= price


class PaymentWebhookVerifier:
    """
    Authenticates YooMoney notifications and confirms the referenced registration.

    The notification secret is fixed at construction; a verifier built
    without one rejects every notification with SECRET_MISSING.
    """

    def __init__(self, secret: Optional[str], store_timeout: float = 5.0):
        self._secret = secret
        self.store_timeout = store_timeout

    @property
    def configured(self) -> bool:
        return bool(self._secret)

    def verify(self, notification: PaymentNotification) -> bool:
        expected = compute_signature(notification, self._secret)
        return hmac.compare_digest(expected, notification.sha1_hash)

    async def process(
        self,
        form: Mapping[str, Any],
        store: Optional[RegistrationStore],
    ) -> WebhookResult:
        started = time.perf_counter()
        result = await self._process(form, store)
        record_webhook_outcome(result.outcome.value, time.perf_counter() - started)
        return result

    async def _process(
        self,
        form: Mapping[str, Any],
        store: Optional[RegistrationStore],
    ) -> WebhookResult:
        if not self.configured:
            logger.error("payment_webhook_secret_missing")
            return WebhookResult(WebhookOutcome.SECRET_MISSING, "Server Config Error: Missing Secret")

        notification = parse_notification(form)
        if notification is None:
            logger.warning(
                "payment_webhook_malformed",
                fields=sorted(form.keys()),
            )
            return WebhookResult(WebhookOutcome.MALFORMED, "Invalid Hash")

        log = logger.bind(
            operation_id=notification.operation_id,
            label=notification.label,
            amount=notification.amount,
        )

        if not self.verify(notification):
            log.warning("payment_webhook_forged")
            return WebhookResult(WebhookOutcome.FORGED, "Invalid Hash")

        if store is None:
            log.error("payment_webhook_store_unavailable")
            return WebhookResult(WebhookOutcome.STORE_UNAVAILABLE, "DB Config Error")

        if not notification.label:
            log.info("payment_webhook_without_label")
            return WebhookResult(WebhookOutcome.NO_TARGET, "OK")

        registration_id = parse_label(notification.label)
        if registration_id is None:
            log.warning("payment_webhook_foreign_label")
            return WebhookResult(WebhookOutcome.NO_TARGET, "OK")

        if notification.unaccepted == "true":
            # Funds are frozen on the sender side but the transfer is recorded
            log.warning("payment_webhook_unaccepted", registration_id=registration_id)

        try:
            price = await asyncio.wait_for(
                store.mark_paid(registration_id), timeout=self.store_timeout
            )
        except asyncio.TimeoutError:
            log.error("payment_webhook_store_timeout", registration_id=registration_id)
            return WebhookResult(
                WebhookOutcome.STORE_ERROR,
                f"DB Update Failed: timed out after {self.store_timeout}s",
                registration_id,
            )
        except SQLAlchemyError as e:
            log.error("payment_webhook_store_error", registration_id=registration_id, error=str(e))
            return WebhookResult(
                WebhookOutcome.STORE_ERROR, f"DB Update Failed: {e}", registration_id
            )

        if price is None:
            log.warning("payment_webhook_unknown_registration", registration_id=registration_id)
            return WebhookResult(WebhookOutcome.NO_TARGET, "OK", registration_id)

        if not covers_price(notification, price):
            # Seats are confirmed regardless; the organizer settles the difference
            log.warning(
                "payment_amount_below_price",
                registration_id=registration_id,
                withdraw_amount=notification.withdraw_amount,
                price=price,
            )

        log.info("payment_confirmed", registration_id=registration_id)
        return WebhookResult(WebhookOutcome.UPDATED, "OK", registration_id)
