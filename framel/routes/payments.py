import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.engine import Engine
from sqlmodel import Session

from framel.database import get_engine, get_session
from framel.dependencies.identity import Identity, get_identity
from framel.schemas.payment_schemas import InitiatePaymentRequest
from framel.services import payment_service
from framel.services.mpesa_client import MpesaClient, get_mpesa_client

logger = logging.getLogger(__name__)

router = APIRouter()

CALLBACK_ACK = {"ResultCode": 0, "ResultDesc": "Accepted"}


@router.post("/mpesa/initiate")
def initiate_mpesa_payment(
    data: InitiatePaymentRequest,
    session: Session = Depends(get_session),
    client: MpesaClient = Depends(get_mpesa_client),
    identity: Identity = Depends(get_identity),
):
    result = payment_service.initiate_payment(
        session,
        client,
        order_id=data.order_id,
        phone=data.phone,
        amount=data.amount,
        owner_key=identity.key,
    )
    return {"message": "Check your phone to complete the payment", **result}


@router.post("/mpesa/callback")
async def mpesa_callback(
    request: Request,
    background_tasks: BackgroundTasks,
    engine: Engine = Depends(get_engine),
):
    """
    Safaricom retries until it gets a 200, so the body is acknowledged
    as-is and reconciled after the response is sent.
    """
    try:
        payload = await request.json()
    except ValueError:
        body = await request.body()
        logger.warning(f"Unparsable M-Pesa callback body: {body[:200]!r}")
        return CALLBACK_ACK

    background_tasks.add_task(payment_service.process_callback, engine, payload)
    return CALLBACK_ACK


@router.get("/mpesa/status/{checkout_request_id}")
def mpesa_status(
    checkout_request_id: str,
    session: Session = Depends(get_session),
    client: MpesaClient = Depends(get_mpesa_client),
    identity: Identity = Depends(get_identity),
):
    result = payment_service.query_payment_status(
        session, client, checkout_request_id, owner_key=identity.key
    )
    return result.model_dump()
