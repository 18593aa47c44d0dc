import pytest
from sqlalchemy.exc import IntegrityError

from balanced.core.errors import SlotUnavailable, ValidationError
from balanced.models.booking import BookedSlot, CallStatus, CoachingCall, ConsultationRequest, ConsultationStatus
from balanced.services import allocator
from balanced.services.allocator import SlotOwner


def _call(db, duration=60, key="2025-06-16-9am"):
    call = CoachingCall(
        first_name="A", last_name="B", email="a@example.com", phone="1",
        selected_time_slot=key, duration_minutes=duration, amount_cents=8500, status=CallStatus.PENDING,
    )
    db.add(call)
    db.flush()
    return call


def _request(db, key="2025-06-16-9am"):
    req = ConsultationRequest(
        first_name="A", last_name="B", email="a@example.com", phone="1", contact_method="email",
        selected_time_slot=key, goals="g", status=ConsultationStatus.PENDING,
    )
    db.add(req)
    db.flush()
    return req


def test_owner_must_be_exactly_one_booking():
    with pytest.raises(ValueError):
        SlotOwner()
    with pytest.raises(ValueError):
        SlotOwner(consultation_request_id=1, coaching_call_id=2)


@pytest.mark.parametrize(
    "duration, expected",
    [
        (30, ["2025-06-16-9am"]),
        (45, ["2025-06-16-9am", "2025-06-16-930am"]),
        (60, ["2025-06-16-9am", "2025-06-16-930am"]),
    ],
)
def test_required_slot_keys(duration, expected):
    assert allocator.required_slot_keys("2025-06-16-9am", duration) == expected


def test_required_slot_keys_rejects_bad_input():
    with pytest.raises(ValidationError):
        allocator.required_slot_keys("2025-06-16-9am", 90)
    with pytest.raises(ValidationError):
        allocator.required_slot_keys("mon-9am", 30)
    with pytest.raises(SlotUnavailable):
        allocator.required_slot_keys("2025-06-16-1130pm", 60)


def test_reserve_single_slot(db):
    req = _request(db)
    reserved = allocator.reserve_slots(db, "2025-06-16-9am", 30, SlotOwner(consultation_request_id=req.id))
    db.commit()
    assert reserved.secondary is None
    assert reserved.slot_keys == ["2025-06-16-9am"]
    row = db.query(BookedSlot).one()
    assert row.consultation_request_id == req.id and not row.is_secondary


def test_reserve_pair_links_secondary_to_primary(db):
    call = _call(db)
    reserved = allocator.reserve_slots(db, "2025-06-16-9am", 60, SlotOwner(coaching_call_id=call.id))
    db.commit()
    assert reserved.slot_keys == ["2025-06-16-9am", "2025-06-16-930am"]
    assert reserved.secondary.is_secondary
    assert reserved.secondary.primary_slot_id == reserved.primary.id
    assert {r.coaching_call_id for r in db.query(BookedSlot).all()} == {call.id}


def test_taken_slot_fails_and_rolls_back_caller_record(db):
    first = _request(db)
    allocator.reserve_slots(db, "2025-06-16-9am", 30, SlotOwner(consultation_request_id=first.id))
    db.commit()

    second = _request(db)
    with pytest.raises(SlotUnavailable):
        allocator.reserve_slots(db, "2025-06-16-9am", 30, SlotOwner(consultation_request_id=second.id))
    assert db.query(ConsultationRequest).count() == 1
    assert db.query(BookedSlot).count() == 1


def test_pair_is_all_or_nothing(db):
    blocker = _request(db, "2025-06-16-930am")
    allocator.reserve_slots(db, "2025-06-16-930am", 30, SlotOwner(consultation_request_id=blocker.id))
    db.commit()

    call = _call(db)
    with pytest.raises(SlotUnavailable):
        allocator.reserve_slots(db, "2025-06-16-9am", 60, SlotOwner(coaching_call_id=call.id))
    assert [r.slot_key for r in db.query(BookedSlot).all()] == ["2025-06-16-930am"]
    assert db.query(CoachingCall).count() == 0


def test_unique_constraint_catches_a_stale_check(session_factory):
    # two sessions both pass the read before either writes
    a, b = session_factory(), session_factory()
    try:
        req_a = _request(a)
        allocator.reserve_slots(a, "2025-06-16-9am", 30, SlotOwner(consultation_request_id=req_a.id))
        a.commit()

        req_b = _request(b)
        b.add(BookedSlot(slot_key="2025-06-16-9am", consultation_request_id=req_b.id))
        with pytest.raises(IntegrityError):
            b.flush()
        b.rollback()
    finally:
        a.close()
        b.close()


def test_release_for_owner_frees_both_halves(db):
    call = _call(db)
    allocator.reserve_slots(db, "2025-06-16-9am", 60, SlotOwner(coaching_call_id=call.id))
    db.commit()

    n = allocator.release_slots_for_owner(db, SlotOwner(coaching_call_id=call.id))
    db.commit()
    assert n == 2
    assert db.query(BookedSlot).count() == 0


def test_list_booked_slots_in_time_order(db):
    for key in ("2025-06-16-10am", "2025-06-16-9am", "2025-06-15-8pm"):
        req = _request(db, key)
        allocator.reserve_slots(db, key, 30, SlotOwner(consultation_request_id=req.id))
    db.commit()
    assert [r.slot_key for r in allocator.list_booked_slots(db)] == [
        "2025-06-15-8pm", "2025-06-16-9am", "2025-06-16-10am",
    ]
