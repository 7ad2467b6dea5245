# app/api/routers/webhooks.py
from fastapi import APIRouter, Depends, Header, Request
from starlette.concurrency import run_in_threadpool

from app.api.routers.orders import get_payment_service
from app.domain.schemas import WebhookOut
from app.services.payment_service import PaymentService

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/payment", response_model=WebhookOut)
async def payment_webhook(
    request: Request,
    x_razorpay_signature: str | None = Header(None),
    svc: PaymentService = Depends(get_payment_service),
):
    #podpis liczony na surowych bajtach, wiec body czytamy sami zamiast modelu pydantic
    body = await request.body()
    return await run_in_threadpool(svc.handle_webhook, body, x_razorpay_signature)
