"""
Unit tests for notification parsing, signing and the verifier state machine.
"""

import asyncio
import hashlib

import pytest

from app.services import payment_webhook
from app.services.payment_webhook import (
    PaymentWebhookVerifier,
    WebhookOutcome,
    compute_signature,
    covers_price,
    parse_notification,
    signing_string,
)

FIELDS = {
    "notification_type": "p2p-incoming",
    "operation_id": "904035776918098009",
    "amount": "1470.00",
    "currency": "643",
    "datetime": "2024-05-11T12:30:00Z",
    "sender": "41001000040",
    "codepro": "false",
    "label": "reg_7",
}


def signed(secret="club-secret", **overrides) -> dict:
    form = dict(FIELDS, **overrides)
    notification = parse_notification(dict(form, sha1_hash="x"))
    form["sha1_hash"] = compute_signature(notification, secret)
    return form


class RecordingStore:
    def __init__(self, known_ids=(7,), price=1470):
        self.known_ids = set(known_ids)
        self.price = price
        self.calls = []

    async def mark_paid(self, registration_id):
        self.calls.append(registration_id)
        return self.price if registration_id in self.known_ids else None


class SlowStore:
    async def mark_paid(self, registration_id):
        await asyncio.sleep(1)
        return 1470


class RecordingLogger:
    def __init__(self):
        self.events = []

    def bind(self, **kw):
        return self

    def _record(self, event, **kw):
        self.events.append(event)

    info = warning = error = _record


def test_signing_string_field_order():
    notification = parse_notification(dict(FIELDS, sha1_hash="x"))
    assert signing_string(notification, "club-secret") == (
        "p2p-incoming&904035776918098009&1470.00&643&2024-05-11T12:30:00Z&41001000040&false&club-secret&reg_7"
    )


def test_signature_is_lowercase_sha1_hex():
    notification = parse_notification(dict(FIELDS, sha1_hash="x"))
    expected = hashlib.sha1(signing_string(notification, "club-secret").encode("utf-8")).hexdigest()
    assert compute_signature(notification, "club-secret") == expected
    assert expected == expected.lower()
    assert len(expected) == 40


def test_absent_label_signs_as_empty_string():
    form = {k: v for k, v in FIELDS.items() if k != "label"}
    notification = parse_notification(dict(form, sha1_hash="x"))
    assert notification.label is None
    assert signing_string(notification, "s").endswith("&false&s&")


def test_signing_string_is_utf8_encoded():
    notification = parse_notification(dict(FIELDS, sha1_hash="x", label="reg_7"))
    secret = "секрет"
    expected = hashlib.sha1(signing_string(notification, secret).encode("utf-8")).hexdigest()
    assert compute_signature(notification, secret) == expected


@pytest.mark.parametrize("missing", [
    "notification_type", "operation_id", "amount", "currency",
    "datetime", "sender", "codepro", "sha1_hash",
])
def test_parse_rejects_missing_required_field(missing):
    form = dict(FIELDS, sha1_hash="x")
    del form[missing]
    assert parse_notification(form) is None


def test_parse_keeps_optional_fields():
    notification = parse_notification(dict(FIELDS, sha1_hash="abc", unaccepted="false"))
    assert notification.label == "reg_7"
    assert notification.unaccepted == "false"
    assert notification.sha1_hash == "abc"


@pytest.mark.asyncio
async def test_verified_notification_updates_store():
    store = RecordingStore()
    verifier = PaymentWebhookVerifier(secret="club-secret")

    result = await verifier.process(signed(), store)

    assert result.outcome is WebhookOutcome.UPDATED
    assert result.status_code == 200
    assert result.registration_id == 7
    assert store.calls == [7]


@pytest.mark.asyncio
async def test_forged_notification_never_reaches_store():
    store = RecordingStore()
    verifier = PaymentWebhookVerifier(secret="club-secret")

    result = await verifier.process(signed(secret="other-secret"), store)

    assert result.outcome is WebhookOutcome.FORGED
    assert result.status_code == 403
    assert store.calls == []


@pytest.mark.asyncio
async def test_malformed_notification_is_forbidden():
    store = RecordingStore()
    verifier = PaymentWebhookVerifier(secret="club-secret")
    form = signed()
    del form["amount"]

    result = await verifier.process(form, store)

    assert result.outcome is WebhookOutcome.MALFORMED
    assert result.status_code == 403
    assert store.calls == []


@pytest.mark.asyncio
async def test_verifier_without_secret_rejects_everything():
    store = RecordingStore()
    verifier = PaymentWebhookVerifier(secret="")

    result = await verifier.process(signed(secret=""), store)

    assert result.outcome is WebhookOutcome.SECRET_MISSING
    assert result.status_code == 500
    assert store.calls == []


@pytest.mark.asyncio
async def test_missing_store_is_a_config_error():
    verifier = PaymentWebhookVerifier(secret="club-secret")

    result = await verifier.process(signed(), None)

    assert result.outcome is WebhookOutcome.STORE_UNAVAILABLE
    assert result.status_code == 500


@pytest.mark.asyncio
async def test_unlabelled_notification_is_a_no_op():
    store = RecordingStore()
    verifier = PaymentWebhookVerifier(secret="club-secret")
    form = signed(label="")
    del form["label"]

    result = await verifier.process(form, store)

    assert result.outcome is WebhookOutcome.NO_TARGET
    assert result.status_code == 200
    assert store.calls == []


@pytest.mark.asyncio
async def test_unknown_registration_is_acknowledged():
    store = RecordingStore(known_ids=())
    verifier = PaymentWebhookVerifier(secret="club-secret")

    result = await verifier.process(signed(), store)

    assert result.outcome is WebhookOutcome.NO_TARGET
    assert result.status_code == 200
    assert store.calls == [7]


@pytest.mark.asyncio
async def test_slow_store_times_out_as_store_error():
    verifier = PaymentWebhookVerifier(secret="club-secret", store_timeout=0.01)

    result = await verifier.process(signed(), SlowStore())

    assert result.outcome is WebhookOutcome.STORE_ERROR
    assert result.status_code == 500
    assert result.message.startswith("DB Update Failed")


def test_parse_keeps_withdraw_amount():
    notification = parse_notification(dict(FIELDS, sha1_hash="x", withdraw_amount="1500.00"))
    assert notification.withdraw_amount == "1500.00"
    assert parse_notification(dict(FIELDS, sha1_hash="x")).withdraw_amount is None


def test_covers_price_prefers_amount_before_commission():
    net_only = parse_notification(dict(FIELDS, sha1_hash="x"))
    assert covers_price(net_only, 1470)
    assert not covers_price(net_only, 1500)

    gross = parse_notification(dict(FIELDS, sha1_hash="x", withdraw_amount="1500.00"))
    assert covers_price(gross, 1500)

    garbled = parse_notification(dict(FIELDS, sha1_hash="x", withdraw_amount="NaN"))
    assert not covers_price(garbled, 0)


@pytest.mark.asyncio
async def test_underpayment_is_confirmed_with_warning(monkeypatch):
    log = RecordingLogger()
    monkeypatch.setattr(payment_webhook, "logger", log)
    verifier = PaymentWebhookVerifier(secret="club-secret")

    result = await verifier.process(signed(), RecordingStore(price=2000))

    assert result.outcome is WebhookOutcome.UPDATED
    assert "payment_amount_below_price" in log.events
    assert "payment_confirmed" in log.events


@pytest.mark.asyncio
async def test_full_payment_logs_no_price_warning(monkeypatch):
    log = RecordingLogger()
    monkeypatch.setattr(payment_webhook, "logger", log)
    verifier = PaymentWebhookVerifier(secret="club-secret")

    result = await verifier.process(signed(withdraw_amount="1500.00"), RecordingStore(price=1500))

    assert result.outcome is WebhookOutcome.UPDATED
    assert "payment_amount_below_price" not in log.events
