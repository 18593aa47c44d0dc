"""
Slot allocator: turns (slot key, duration) into one or two BookedSlot rows.

Runs inside the caller's unit of work and never commits. Availability is
re-checked here at write time, and the unique constraint on
booked_slots.slot_key settles any race that slips past the check. On conflict
the session's transaction is rolled back, so nothing the caller added in the
same transaction (e.g. the business record) survives either.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core import time_slots as ts
from ..core.errors import SlotUnavailable, ValidationError
from ..models.booking import BookedSlot

logger = logging.getLogger(__name__)

ALLOWED_DURATIONS = (30, 45, 60)


@dataclass(frozen=True)
class SlotOwner:
    consultation_request_id: int | None = None
    coaching_call_id: int | None = None

    def __post_init__(self):
        if (self.consultation_request_id is None) == (self.coaching_call_id is None):
            raise ValueError("a booked slot belongs to exactly one booking")

    def filter_clause(self):
        if self.consultation_request_id is not None:
            return BookedSlot.consultation_request_id == self.consultation_request_id
        return BookedSlot.coaching_call_id == self.coaching_call_id


@dataclass(frozen=True)
class ReservedSlots:
    primary: BookedSlot
    secondary: BookedSlot | None = None

    @property
    def slot_keys(self) -> list[str]:
        keys = [self.primary.slot_key]
        if self.secondary is not None:
            keys.append(self.secondary.slot_key)
        return keys


def required_slot_keys(slot_key: str, duration_minutes: int) -> list[str]:
    """
    30 minutes -> the slot itself. 45 and 60 minutes -> the slot plus the next
    half hour on the same date (a 45 minute call occupies a full hour).
    """
    if duration_minutes not in ALLOWED_DURATIONS:
        raise ValidationError(f"Duration must be one of {', '.join(map(str, ALLOWED_DURATIONS))} minutes")
    try:
        ts.parse_slot_key(slot_key)
    except ValueError:
        raise ValidationError("Invalid time slot") from None

    if duration_minutes == 30:
        return [slot_key]

    nxt = ts.next_slot_key(slot_key)
    if nxt is None:
        raise SlotUnavailable("There is not enough time left on that day for this call length.")
    return [slot_key, nxt]


def reserve_slots(db: Session, slot_key: str, duration_minutes: int, owner: SlotOwner) -> ReservedSlots:
    keys = required_slot_keys(slot_key, duration_minutes)

    taken = db.query(BookedSlot.slot_key).filter(BookedSlot.slot_key.in_(keys)).all()
    if taken:
        logger.info("slot conflict on %s (taken: %s)", keys, [r[0] for r in taken])
        db.rollback()
        raise SlotUnavailable()

    primary = BookedSlot(
        slot_key=keys[0],
        duration_minutes=duration_minutes,
        is_secondary=False,
        consultation_request_id=owner.consultation_request_id,
        coaching_call_id=owner.coaching_call_id,
    )
    secondary = None
    try:
        db.add(primary)
        db.flush()
        if len(keys) == 2:
            secondary = BookedSlot(
                slot_key=keys[1],
                duration_minutes=duration_minutes,
                is_secondary=True,
                primary_slot_id=primary.id,
                consultation_request_id=owner.consultation_request_id,
                coaching_call_id=owner.coaching_call_id,
            )
            db.add(secondary)
            db.flush()
    except IntegrityError:
        # lost the race to a concurrent booker between the check and the insert
        db.rollback()
        logger.info("slot conflict on %s detected by unique constraint", keys)
        raise SlotUnavailable() from None

    return ReservedSlots(primary=primary, secondary=secondary)


def _delete_pairs(db: Session, primaries: list[BookedSlot]) -> int:
    if not primaries:
        return 0
    ids = [p.id for p in primaries]
    # secondaries first: they reference their primary row
    n = (
        db.query(BookedSlot)
        .filter(BookedSlot.primary_slot_id.in_(ids))
        .delete(synchronize_session=False)
    )
    n += db.query(BookedSlot).filter(BookedSlot.id.in_(ids)).delete(synchronize_session=False)
    return n


def release_slots_for_owner(db: Session, owner: SlotOwner) -> int:
    """Delete every slot row held by `owner`. Returns the number of rows removed."""
    rows = db.query(BookedSlot).filter(owner.filter_clause()).all()
    secondaries = [r for r in rows if r.is_secondary]
    primaries = [r for r in rows if not r.is_secondary]

    n = 0
    for s in secondaries:
        db.delete(s)
        n += 1
    db.flush()
    n += _delete_pairs(db, primaries)
    db.flush()
    if n:
        logger.info("released %d slot row(s) for %s", n, owner)
    return n


def list_booked_slots(db: Session) -> list[BookedSlot]:
    rows = db.query(BookedSlot).all()

    def _order(r: BookedSlot):
        try:
            return (0, *ts.sort_key(r.slot_key))
        except ValueError:
            return (1, r.slot_key, 0)

    return sorted(rows, key=_order)
