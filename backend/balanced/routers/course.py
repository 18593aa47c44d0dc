from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..core.errors import BookingError
from ..database import get_db
from ..deps import get_current_user
from ..models.user import User
from ..schemas.booking import ConfirmPaymentIn
from ..services import course
from ..services.notifications import Notifier, get_notifier
from ..services.payments import PaymentGateway, get_payment_gateway

router = APIRouter(prefix="/api", tags=["course"])


@router.post("/create-payment-intent")
def create_course_payment_intent(
    me: User = Depends(get_current_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    try:
        handle = course.start_course_purchase(me, gateway)
    except BookingError as e:
        raise HTTPException(e.status_code, e.message)
    return {"clientSecret": handle.client_secret, "paymentIntentId": handle.reference}


@router.post("/confirm-course-payment")
def confirm_course_payment(
    payload: ConfirmPaymentIn,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notify: Notifier = Depends(get_notifier),
):
    try:
        user = course.confirm_course_payment(db, me, payload.payment_intent_id, gateway, notify=notify)
    except BookingError as e:
        raise HTTPException(e.status_code, e.message)
    return {"success": True, "hasCourseAccess": user.has_course_access}


@router.get("/course")
def course_content(me: User = Depends(get_current_user)):
    if not course.has_access(me):
        raise HTTPException(403, "Course access required")
    return {"lessons": course.LESSONS}
