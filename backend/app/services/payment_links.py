"""
YooMoney quickpay redirect URLs.

The registration id travels through the processor inside `label` as
`reg_<id>` and comes back in the payment notification, which is how the
webhook finds the registration to confirm. Everything here is pure.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Union
from urllib.parse import urlencode, urlsplit, urlunsplit, parse_qsl

LABEL_PREFIX = "reg_"
# Registration ids are 32-bit INTEGER primary keys
MAX_REGISTRATION_ID = 2**31 - 1
_ID_PATTERN = re.compile(r"[0-9]+")


def make_label(registration_id: Union[int, str]) -> str:
    return f"{LABEL_PREFIX}{registration_id}"


def parse_label(label: Optional[str]) -> Optional[int]:
    """Registration id carried by a notification label, or None if it carries none."""
    if not label or not label.startswith(LABEL_PREFIX):
        return None
    raw_id = label[len(LABEL_PREFIX):]
    if not _ID_PATTERN.fullmatch(raw_id):
        return None
    registration_id = int(raw_id)
    if not 0 < registration_id <= MAX_REGISTRATION_ID:
        return None
    return registration_id


def format_amount(amount: Union[int, float, str, Decimal]) -> str:
    """Render a positive amount the way quickpay expects it: rubles with kopecks."""
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValueError(f"Amount is not a number: {amount!r}")
    if not value.is_finite() or value <= 0:
        raise ValueError(f"Amount must be positive, got {amount!r}")
    return str(value.quantize(Decimal("0.01")))


def build_return_url(base_url: str, event_id: int) -> str:
    """Deep link that reopens the mini app on the event the payment was for."""
    scheme, netloc, path, query, fragment = urlsplit(base_url)
    params = [(k, v) for k, v in parse_qsl(query) if k != "startapp"]
    params.append(("startapp", f"event_{event_id}"))
    return urlunsplit((scheme, netloc, path, urlencode(params), fragment))


def build_payment_url(
    registration_id: Union[int, str],
    description: str,
    amount: Union[int, float, str, Decimal],
    *,
    receiver: str,
    return_url: str,
    checkout_url: str = "https://yoomoney.ru/quickpay/confirm",
    payment_type: str = "AC",
) -> str:
    """
    Build the hosted checkout URL for one registration.

    Raises ValueError for an empty registration id or receiver and for a
    non-positive amount.
    """
    if registration_id is None or str(registration_id).strip() == "":
        raise ValueError("Registration id is required")
    if not receiver:
        raise ValueError("Receiver account is required")

    params = {
        "receiver": receiver,
        "quickpay-form": "button",
        "paymentType": payment_type,
        "sum": format_amount(amount),
        "label": make_label(registration_id),
        "targets": description,
        "successURL": return_url,
    }
    return f"{checkout_url}?{urlencode(params)}"
