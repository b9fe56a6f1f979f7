"""
Payment processor callbacks.

YooMoney POSTs a form-encoded notification here after every incoming
transfer to the club wallet. Its only client is the processor, so the
response is plain text and the status code is the whole contract:
anything but 2xx makes YooMoney deliver the notification again.
"""

from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.db.session import get_optional_db
from app.services.payment_webhook import PaymentWebhookVerifier
from app.services.registration_store import RegistrationStore

router = APIRouter(prefix="/payments", tags=["Payments"])


@lru_cache()
def get_webhook_verifier() -> PaymentWebhookVerifier:
    settings = get_settings()
    return PaymentWebhookVerifier(
        secret=settings.YOOMONEY_SECRET,
        store_timeout=settings.WEBHOOK_STORE_TIMEOUT,
    )


def get_registration_store(
    session: Optional[AsyncSession] = Depends(get_optional_db),
) -> Optional[RegistrationStore]:
    # Opening a session does not touch the database until a statement runs
    if session is None:
        return None
    return RegistrationStore(session)


@router.post("/yoomoney/webhook", response_class=PlainTextResponse)
async def yoomoney_webhook(
    request: Request,
    verifier: PaymentWebhookVerifier = Depends(get_webhook_verifier),
    store: Optional[RegistrationStore] = Depends(get_registration_store),
):
    form = await request.form()
    result = await verifier.process(form, store)
    return PlainTextResponse(result.message, status_code=result.status_code)


@router.api_route(
    "/yoomoney/webhook",
    methods=["GET", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def yoomoney_webhook_wrong_method():
    return PlainTextResponse(
        "Method not allowed", status_code=405, headers={"Allow": "POST"}
    )
