from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core import time_slots as ts
from ..core.errors import BookingError
from ..database import get_db
from ..deps import auth_admin
from ..models.availability import AvailabilityWindow, DateOverride, SlotTemplate
from ..schemas.availability import (
    SlotTemplateIn,
    SlotTemplateUpdate,
    SlotTemplateOut,
    ToggleIn,
    AvailabilityWindowIn,
    AvailabilityWindowOut,
    DateOverrideIn,
    DateOverrideOut,
)
from ..schemas.booking import BookedSlotOut, CallStatusIn, CoachingCallOut, ConsultationRequestOut
from ..services import allocator, bookings
from ..services.notifications import Notifier, get_notifier
from ..services.payments import PaymentGateway, get_payment_gateway

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(auth_admin)])


def _http(e: BookingError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)


def _template_label(dow: str, tod: str) -> str:
    return f"{ts.DAY_NAMES[dow]} {ts.display_time(tod)}"


# -----------------------------------------------------------------------------
# WEEKLY TEMPLATES
# -----------------------------------------------------------------------------
@router.get("/time-slots", response_model=List[SlotTemplateOut])
def time_slots_list(db: Session = Depends(get_db)):
    rows = db.query(SlotTemplate).all()
    return sorted(
        rows,
        key=lambda t: (ts.DAYS_OF_WEEK.index(t.day_of_week), ts.time_order(t.time_of_day)),
    )


@router.post("/time-slots", response_model=SlotTemplateOut)
def time_slots_create(payload: SlotTemplateIn, db: Session = Depends(get_db)):
    t = SlotTemplate(
        day_of_week=payload.day_of_week,
        time_of_day=payload.time_of_day,
        value=ts.make_template_key(payload.day_of_week, payload.time_of_day),
        label=payload.label or _template_label(payload.day_of_week, payload.time_of_day),
        is_active=payload.is_active,
    )
    db.add(t)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(400, "A slot for that day and time already exists")
    db.refresh(t)
    return t


@router.put("/time-slots/{slot_id}", response_model=SlotTemplateOut)
def time_slots_update(slot_id: int, payload: SlotTemplateUpdate, db: Session = Depends(get_db)):
    t = db.get(SlotTemplate, slot_id)
    if not t:
        raise HTTPException(404, "Time slot not found")

    moved = payload.day_of_week is not None or payload.time_of_day is not None
    if payload.day_of_week is not None:
        t.day_of_week = payload.day_of_week
    if payload.time_of_day is not None:
        t.time_of_day = payload.time_of_day
    if moved:
        t.value = ts.make_template_key(t.day_of_week, t.time_of_day)
        if payload.label is None:
            t.label = _template_label(t.day_of_week, t.time_of_day)
    if payload.label is not None:
        t.label = payload.label
    if payload.is_active is not None:
        t.is_active = payload.is_active

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(400, "A slot for that day and time already exists")
    db.refresh(t)
    return t


@router.put("/time-slots/{slot_id}/toggle", response_model=SlotTemplateOut)
def time_slots_toggle(slot_id: int, payload: ToggleIn, db: Session = Depends(get_db)):
    t = db.get(SlotTemplate, slot_id)
    if not t:
        raise HTTPException(404, "Time slot not found")
    t.is_active = payload.is_active
    db.commit()
    db.refresh(t)
    return t


@router.delete("/time-slots/{slot_id}")
def time_slots_delete(slot_id: int, db: Session = Depends(get_db)):
    t = db.get(SlotTemplate, slot_id)
    if not t:
        raise HTTPException(404, "Time slot not found")
    # booked slots are keyed by date, not by template: existing bookings stay
    db.delete(t)
    db.commit()
    return {"ok": True}


# -----------------------------------------------------------------------------
# AVAILABILITY WINDOWS (date ranges where the templates apply)
# -----------------------------------------------------------------------------
@router.get("/specific-date-slots", response_model=List[AvailabilityWindowOut])
def windows_list(db: Session = Depends(get_db)):
    return db.query(AvailabilityWindow).order_by(
        AvailabilityWindow.start_date.asc(), AvailabilityWindow.id.asc()
    ).all()


@router.post("/specific-date-slots", response_model=AvailabilityWindowOut)
def windows_create(payload: AvailabilityWindowIn, db: Session = Depends(get_db)):
    w = AvailabilityWindow(**payload.model_dump())
    db.add(w)
    db.commit()
    db.refresh(w)
    return w


@router.put("/specific-date-slots/{window_id}", response_model=AvailabilityWindowOut)
def windows_update(window_id: int, payload: AvailabilityWindowIn, db: Session = Depends(get_db)):
    w = db.get(AvailabilityWindow, window_id)
    if not w:
        raise HTTPException(404, "Availability window not found")
    for k, v in payload.model_dump().items():
        setattr(w, k, v)
    db.commit()
    db.refresh(w)
    return w


@router.delete("/specific-date-slots/{window_id}")
def windows_delete(window_id: int, db: Session = Depends(get_db)):
    w = db.get(AvailabilityWindow, window_id)
    if not w:
        raise HTTPException(404, "Availability window not found")
    db.delete(w)
    db.commit()
    return {"ok": True}


# -----------------------------------------------------------------------------
# DATE OVERRIDES
# -----------------------------------------------------------------------------
@router.get("/date-overrides", response_model=List[DateOverrideOut])
def overrides_list(db: Session = Depends(get_db)):
    rows = db.query(DateOverride).all()
    return sorted(rows, key=lambda o: (o.date or o.start_date, o.id))


@router.post("/date-overrides", response_model=DateOverrideOut)
def overrides_create(payload: DateOverrideIn, db: Session = Depends(get_db)):
    o = DateOverride(**payload.model_dump())
    db.add(o)
    db.commit()
    db.refresh(o)
    return o


@router.put("/date-overrides/{override_id}", response_model=DateOverrideOut)
def overrides_update(override_id: int, payload: DateOverrideIn, db: Session = Depends(get_db)):
    o = db.get(DateOverride, override_id)
    if not o:
        raise HTTPException(404, "Date override not found")
    for k, v in payload.model_dump().items():
        setattr(o, k, v)
    db.commit()
    db.refresh(o)
    return o


@router.delete("/date-overrides/{override_id}")
def overrides_delete(override_id: int, db: Session = Depends(get_db)):
    o = db.get(DateOverride, override_id)
    if not o:
        raise HTTPException(404, "Date override not found")
    db.delete(o)
    db.commit()
    return {"ok": True}


# -----------------------------------------------------------------------------
# BOOKINGS: release / cancel / delete
# -----------------------------------------------------------------------------
@router.get("/booked-slots", response_model=List[BookedSlotOut])
def booked_slots_list(db: Session = Depends(get_db)):
    return allocator.list_booked_slots(db)


@router.delete("/booked-slots/{booked_slot_id}")
def booked_slots_delete(booked_slot_id: int, db: Session = Depends(get_db)):
    try:
        bookings.release_booked_slot(db, booked_slot_id)
    except BookingError as e:
        raise _http(e)
    return {"ok": True}


@router.delete("/consultation-requests/{request_id}")
def consultation_delete(request_id: int, db: Session = Depends(get_db)):
    try:
        bookings.delete_consultation_request(db, request_id)
    except BookingError as e:
        raise _http(e)
    return {"ok": True}


@router.post("/consultation-requests/{request_id}/cancel", response_model=ConsultationRequestOut)
def consultation_cancel(request_id: int, db: Session = Depends(get_db)):
    try:
        return bookings.cancel_consultation_request(db, request_id)
    except BookingError as e:
        raise _http(e)


@router.post("/coaching-calls/release-stale")
def coaching_calls_release_stale(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notify: Notifier = Depends(get_notifier),
):
    released = bookings.release_stale_pending_calls(db, gateway, notify=notify)
    return {"ok": True, "released": released}


@router.delete("/coaching-calls/{call_id}")
def coaching_call_delete(call_id: int, db: Session = Depends(get_db)):
    try:
        bookings.delete_coaching_call(db, call_id)
    except BookingError as e:
        raise _http(e)
    return {"ok": True}


@router.patch("/coaching-calls/{call_id}/status", response_model=CoachingCallOut)
def coaching_call_status(call_id: int, payload: CallStatusIn, db: Session = Depends(get_db)):
    try:
        return bookings.update_coaching_call_status(db, call_id, payload.status)
    except BookingError as e:
        raise _http(e)
