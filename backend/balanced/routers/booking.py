from typing import List

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..core.errors import BookingError
from ..database import get_db
from ..deps import auth_admin, get_optional_user
from ..models.user import User
from ..schemas.booking import (
    SlotOptionOut,
    ConsultationRequestIn,
    ConsultationRequestOut,
    CoachingCallIn,
    CoachingCallOut,
    ConfirmPaymentIn,
    PaymentIntentOut,
)
from ..services import bookings
from ..services.availability import compute_available_slots
from ..services.notifications import Notifier, get_notifier
from ..services.payments import PaymentGateway, get_payment_gateway

router = APIRouter(prefix="/api", tags=["booking"])


def _http(e: BookingError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)


# -----------------------------------------------------------------------------
# AVAILABILITY (public)
# -----------------------------------------------------------------------------
@router.get("/available-time-slots", response_model=List[SlotOptionOut])
def available_time_slots(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notify: Notifier = Depends(get_notifier),
):
    # lazy release of unpaid holds
    bookings.sweep_stale_holds(db, gateway, notify=notify)
    return [s.as_option() for s in compute_available_slots(db)]


# -----------------------------------------------------------------------------
# FREE CONSULTATION
# -----------------------------------------------------------------------------
@router.post("/consultation-requests")
def create_consultation_request(
    payload: ConsultationRequestIn,
    db: Session = Depends(get_db),
    notify: Notifier = Depends(get_notifier),
):
    try:
        req = bookings.create_consultation_request(db, payload, notify=notify)
    except BookingError as e:
        return JSONResponse(status_code=e.status_code, content={"success": False, "error": e.message})
    return {"success": True, "id": req.id}


@router.get("/consultation-requests", response_model=List[ConsultationRequestOut])
def list_consultation_requests(db: Session = Depends(get_db), admin: User = Depends(auth_admin)):
    return bookings.list_consultation_requests(db)


# -----------------------------------------------------------------------------
# PAID COACHING CALLS
# -----------------------------------------------------------------------------
@router.post("/coaching-calls/create-payment-intent", response_model=PaymentIntentOut)
def create_coaching_call_payment_intent(
    payload: CoachingCallIn,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    me: User | None = Depends(get_optional_user),
):
    try:
        call, handle = bookings.create_coaching_call(db, payload, gateway, user=me)
    except BookingError as e:
        raise _http(e)
    return PaymentIntentOut(
        client_secret=handle.client_secret,
        call_id=call.id,
        payment_intent_id=handle.reference,
        amount=call.amount_cents,
    )


@router.post("/coaching-calls/{call_id}/confirm-payment", response_model=CoachingCallOut)
def confirm_coaching_call_payment(
    call_id: int,
    payload: ConfirmPaymentIn,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notify: Notifier = Depends(get_notifier),
):
    try:
        return bookings.confirm_coaching_call_payment(
            db, call_id, payload.payment_intent_id, gateway, notify=notify
        )
    except BookingError as e:
        raise _http(e)


@router.get("/coaching-calls", response_model=List[CoachingCallOut])
def list_coaching_calls(db: Session = Depends(get_db), admin: User = Depends(auth_admin)):
    return bookings.list_coaching_calls(db)
