"""
Booking record manager: consultation requests and paid coaching calls, kept
consistent with the slot rows the allocator reserves for them.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.orm import Session

from ..config import settings
from ..core import time_slots as ts
from ..core.errors import NotFound, PaymentNotConfirmed, PaymentServiceError, SlotUnavailable, ValidationError
from ..models.booking import BookedSlot, CallStatus, CoachingCall, ConsultationRequest, ConsultationStatus
from ..models.user import User
from ..schemas.booking import CoachingCallIn, ConsultationRequestIn
from . import notifications
from .allocator import SlotOwner, release_slots_for_owner, required_slot_keys, reserve_slots
from .availability import compute_available_slots
from .payments import PaymentGateway, PaymentIntentHandle

logger = logging.getLogger(__name__)

# admin/manual transitions; pending -> paid only happens through payment confirmation
_CALL_TRANSITIONS = {
    CallStatus.PENDING: {CallStatus.CANCELLED},
    CallStatus.PAID: {CallStatus.CONFIRMED, CallStatus.COMPLETED, CallStatus.CANCELLED},
    CallStatus.CONFIRMED: {CallStatus.COMPLETED},
    CallStatus.COMPLETED: set(),
    CallStatus.CANCELLED: set(),
}


def _client_name(rec) -> str:
    return f"{rec.first_name} {rec.last_name}".strip()


def _ensure_offered(db: Session, slot_keys: list[str], now: datetime | date | None) -> None:
    """Every slot a booking would occupy must be one the composer currently offers."""
    for key in slot_keys:
        try:
            ts.parse_slot_key(key)
        except ValueError:
            raise ValidationError("Invalid time slot") from None
    offered = {s.slot_key for s in compute_available_slots(db, now)}
    missing = [k for k in slot_keys if k not in offered]
    if missing:
        logger.info("requested %s not offered (missing %s)", slot_keys, missing)
        raise SlotUnavailable()


def price_for(duration_minutes: int, user: User | None = None) -> int:
    prices = settings.coaching_prices()
    if duration_minutes not in prices:
        raise ValidationError("Duration must be 30, 45 or 60 minutes")
    amount = prices[duration_minutes]
    if user is not None and user.has_course_access:
        amount = amount * (100 - settings.COURSE_MEMBER_DISCOUNT_PCT) // 100
    return amount


# -----------------------------------------------------------------------------
# Consultation requests (free, 30 minutes)
# -----------------------------------------------------------------------------
def create_consultation_request(
    db: Session,
    intake: ConsultationRequestIn,
    notify: notifications.Notifier = notifications.notify,
    now: datetime | date | None = None,
) -> ConsultationRequest:
    key = intake.selected_time_slot
    _ensure_offered(db, [key], now)

    req = ConsultationRequest(**intake.model_dump(), status=ConsultationStatus.PENDING)
    db.add(req)
    db.flush()

    # rolls back req as well on conflict
    reserve_slots(db, key, 30, SlotOwner(consultation_request_id=req.id))

    req.status = ConsultationStatus.CONFIRMED
    db.commit()
    db.refresh(req)
    logger.info("consultation %s booked for %s", req.id, key)

    payload = {
        "client_name": _client_name(req),
        "client_email": req.email,
        "client_phone": req.phone,
        "slot_label": ts.display_slot_key(key),
        "goals": req.goals,
    }
    if not notify(notifications.CONSULTATION_CONFIRMATION, req.email, payload):
        logger.warning("consultation %s: client confirmation not sent", req.id)
    if not notify(notifications.CONSULTATION_COACH_ALERT, settings.COACH_EMAIL, payload):
        logger.warning("consultation %s: coach notification not sent", req.id)
    return req


def list_consultation_requests(db: Session) -> list[ConsultationRequest]:
    return (
        db.query(ConsultationRequest)
        .order_by(ConsultationRequest.created_at.desc(), ConsultationRequest.id.desc())
        .all()
    )


def _get_consultation(db: Session, request_id: int) -> ConsultationRequest:
    req = db.get(ConsultationRequest, request_id)
    if req is None:
        raise NotFound("Consultation request not found")
    return req


def cancel_consultation_request(db: Session, request_id: int) -> ConsultationRequest:
    req = _get_consultation(db, request_id)
    if req.status != ConsultationStatus.CANCELLED:
        release_slots_for_owner(db, SlotOwner(consultation_request_id=req.id))
        req.status = ConsultationStatus.CANCELLED
        db.commit()
        db.refresh(req)
    return req


def delete_consultation_request(db: Session, request_id: int) -> None:
    req = _get_consultation(db, request_id)
    release_slots_for_owner(db, SlotOwner(consultation_request_id=req.id))
    db.delete(req)
    db.commit()
    logger.info("consultation %s deleted", request_id)


# -----------------------------------------------------------------------------
# Coaching calls (paid, 30/45/60 minutes)
# -----------------------------------------------------------------------------
def create_coaching_call(
    db: Session,
    intake: CoachingCallIn,
    gateway: PaymentGateway,
    user: User | None = None,
    now: datetime | date | None = None,
) -> tuple[CoachingCall, PaymentIntentHandle]:
    key = intake.selected_time_slot
    # both halves of a 45/60 minute call must be offered, not just free
    _ensure_offered(db, required_slot_keys(key, intake.duration), now)
    amount = price_for(intake.duration, user)

    fields = intake.model_dump(exclude={"duration"})
    call = CoachingCall(
        **fields,
        duration_minutes=intake.duration,
        amount_cents=amount,
        status=CallStatus.PENDING,
        user_id=user.id if user is not None else None,
    )
    db.add(call)
    db.flush()

    # the slots are held from now on, before payment, so a second payer cannot take them mid-checkout
    reserved = reserve_slots(db, key, intake.duration, SlotOwner(coaching_call_id=call.id))

    try:
        handle = gateway.create_payment_intent(
            amount,
            {"type": "coaching_call", "callId": call.id, "timeSlot": key, "duration": intake.duration},
        )
    except Exception:
        db.rollback()
        raise

    call.payment_reference = handle.reference
    db.commit()
    db.refresh(call)
    logger.info("coaching call %s pending payment, holding %s", call.id, reserved.slot_keys)
    return call, handle


def list_coaching_calls(db: Session) -> list[CoachingCall]:
    return db.query(CoachingCall).order_by(CoachingCall.created_at.desc(), CoachingCall.id.desc()).all()


def _get_call(db: Session, call_id: int) -> CoachingCall:
    call = db.get(CoachingCall, call_id)
    if call is None:
        raise NotFound("Coaching call not found")
    return call


def confirm_coaching_call_payment(
    db: Session,
    call_id: int,
    payment_reference: str | None,
    gateway: PaymentGateway,
    notify: notifications.Notifier = notifications.notify,
) -> CoachingCall:
    call = _get_call(db, call_id)

    if call.status in (CallStatus.PAID, CallStatus.CONFIRMED, CallStatus.COMPLETED):
        return call
    if call.status == CallStatus.CANCELLED:
        raise ValidationError("This booking was cancelled. Please book a new time.")

    if payment_reference and call.payment_reference and payment_reference != call.payment_reference:
        raise ValidationError("Payment does not belong to this booking")
    reference = payment_reference or call.payment_reference
    if not reference:
        raise ValidationError("No payment found for this booking")

    status = gateway.get_payment_status(reference)
    if not status.succeeded:
        # stays pending and keeps its slots until the stale-hold sweep releases them
        logger.warning("coaching call %s: payment %s not confirmed (%s)", call.id, reference, status.status)
        raise PaymentNotConfirmed()

    return _mark_paid(db, call, reference, notify)


def _mark_paid(db: Session, call: CoachingCall, reference: str, notify: notifications.Notifier) -> CoachingCall:
    call.status = CallStatus.PAID
    call.payment_reference = reference
    db.commit()
    db.refresh(call)
    logger.info("coaching call %s paid", call.id)

    payload = {
        "client_name": _client_name(call),
        "client_email": call.email,
        "slot_label": ts.display_slot_key(call.selected_time_slot),
        "duration_minutes": call.duration_minutes,
        "amount_cents": call.amount_cents,
    }
    if not notify(notifications.COACHING_CALL_CONFIRMATION, call.email, payload):
        logger.warning("coaching call %s: client confirmation not sent", call.id)
    if not notify(notifications.COACHING_CALL_COACH_ALERT, settings.COACH_EMAIL, payload):
        logger.warning("coaching call %s: coach notification not sent", call.id)
    return call


def update_coaching_call_status(db: Session, call_id: int, new_status: CallStatus) -> CoachingCall:
    call = _get_call(db, call_id)
    if call.status == new_status:
        return call
    if new_status not in _CALL_TRANSITIONS[call.status]:
        raise ValidationError(f"Cannot change a {call.status.value} call to {new_status.value}")

    if new_status == CallStatus.CANCELLED:
        release_slots_for_owner(db, SlotOwner(coaching_call_id=call.id))
    call.status = new_status
    db.commit()
    db.refresh(call)
    logger.info("coaching call %s -> %s", call.id, new_status.value)
    return call


def delete_coaching_call(db: Session, call_id: int) -> None:
    call = _get_call(db, call_id)
    release_slots_for_owner(db, SlotOwner(coaching_call_id=call.id))
    db.delete(call)
    db.commit()
    logger.info("coaching call %s deleted", call_id)


def release_booked_slot(db: Session, booked_slot_id: int) -> None:
    """
    Admin release of a reservation by slot row id. Either half of a two-slot
    reservation frees both, and the owning booking is cancelled in the same
    transaction so it cannot look live without its slot.
    """
    row = db.get(BookedSlot, booked_slot_id)
    if row is None:
        raise NotFound("Booked slot not found")

    if row.consultation_request_id is not None:
        owner = db.get(ConsultationRequest, row.consultation_request_id)
        release_slots_for_owner(db, SlotOwner(consultation_request_id=row.consultation_request_id))
        if owner is not None:
            owner.status = ConsultationStatus.CANCELLED
    else:
        owner = db.get(CoachingCall, row.coaching_call_id)
        release_slots_for_owner(db, SlotOwner(coaching_call_id=row.coaching_call_id))
        if owner is not None and owner.status != CallStatus.COMPLETED:
            if owner.status in (CallStatus.PAID, CallStatus.CONFIRMED):
                logger.warning("coaching call %s was paid; its slot was released by an admin", owner.id)
            owner.status = CallStatus.CANCELLED
    db.commit()
    logger.info("booked slot %s released by admin", booked_slot_id)


# -----------------------------------------------------------------------------
# Stale holds: unpaid calls stop blocking their slots after a while
# -----------------------------------------------------------------------------
def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were written as UTC
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)


def release_stale_pending_calls(
    db: Session,
    gateway: PaymentGateway,
    now: datetime | None = None,
    hold_minutes: int | None = None,
    notify: notifications.Notifier = notifications.notify,
) -> list[int]:
    """
    Cancel pending calls older than the hold window and free their slots.
    Returns the released call ids.

    The payment is checked first: a call whose intent already succeeded is
    marked paid instead, and the intent of a released call is cancelled so the
    client cannot be charged afterwards. Calls whose payment cannot be checked
    or cancelled keep their hold until the next run.
    """
    hold = settings.PENDING_CALL_HOLD_MINUTES if hold_minutes is None else hold_minutes
    if hold <= 0:
        return []
    cutoff = _as_utc(now or datetime.now(timezone.utc)) - timedelta(minutes=hold)

    pending = db.query(CoachingCall).filter(CoachingCall.status == CallStatus.PENDING).all()
    stale = [c for c in pending if c.created_at is not None and _as_utc(c.created_at) < cutoff]

    released = []
    for call in stale:
        ref = call.payment_reference
        if ref:
            try:
                status = gateway.get_payment_status(ref)
                if status.succeeded:
                    logger.info("stale coaching call %s was paid (%s), keeping it", call.id, ref)
                    _mark_paid(db, call, ref, notify)
                    continue
                gateway.cancel_payment_intent(ref)
            except PaymentServiceError:
                logger.warning("coaching call %s: payment %s not checked, hold kept", call.id, ref)
                continue
        release_slots_for_owner(db, SlotOwner(coaching_call_id=call.id))
        call.status = CallStatus.CANCELLED
        db.commit()
        released.append(call.id)

    if released:
        logger.info("released %d stale pending coaching call(s): %s", len(released), released)
    return released


_LAST_SWEEP_AT: datetime | None = None
_SWEEP_COOLDOWN_SEC = 300  # at most once every 5 minutes


def sweep_stale_holds(
    db: Session,
    gateway: PaymentGateway,
    notify: notifications.Notifier = notifications.notify,
) -> list[int]:
    """Throttled release_stale_pending_calls, run lazily before availability reads."""
    global _LAST_SWEEP_AT
    now = datetime.now(timezone.utc)
    if _LAST_SWEEP_AT and (now - _LAST_SWEEP_AT).total_seconds() < _SWEEP_COOLDOWN_SEC:
        return []
    _LAST_SWEEP_AT = now
    return release_stale_pending_calls(db, gateway, now, notify=notify)
