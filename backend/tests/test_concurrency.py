import threading

from balanced.core import time_slots as ts
from balanced.core.errors import SlotUnavailable
from balanced.models.booking import BookedSlot, CoachingCall, ConsultationRequest
from balanced.schemas.booking import CoachingCallIn, ConsultationRequestIn
from balanced.services import bookings

from conftest import FakeGateway, Outbox

N = 4


def _race(session_factory, book):
    barrier = threading.Barrier(N)
    results = []
    lock = threading.Lock()

    def worker(i):
        s = session_factory()
        try:
            barrier.wait()
            try:
                book(s, i)
                outcome = "ok"
            except SlotUnavailable:
                outcome = "taken"
            except Exception as e:
                outcome = repr(e)
        finally:
            s.close()
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(N)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return results


def test_only_one_consultation_wins_a_slot(session_factory, upcoming):
    key = ts.make_slot_key(upcoming, "9am")
    outbox = Outbox()

    def book(s, i):
        intake = ConsultationRequestIn(
            first_name="Client", last_name=str(i), email=f"c{i}@example.com",
            phone="555", selected_time_slot=key, goals="g",
        )
        bookings.create_consultation_request(s, intake, notify=outbox)

    results = _race(session_factory, book)
    assert sorted(results) == ["ok"] + ["taken"] * (N - 1)

    s = session_factory()
    try:
        assert s.query(ConsultationRequest).count() == 1
        assert [r.slot_key for r in s.query(BookedSlot).all()] == [key]
    finally:
        s.close()


def test_overlapping_calls_do_not_double_book(session_factory, upcoming):
    gateway = FakeGateway()

    def book(s, i):
        # 9am/60 and 930am/30 overlap on 930am
        start = "9am" if i % 2 == 0 else "930am"
        intake = CoachingCallIn(
            first_name="Client", last_name=str(i), email=f"c{i}@example.com",
            phone="555", selected_time_slot=ts.make_slot_key(upcoming, start),
            duration=60 if start == "9am" else 30,
        )
        bookings.create_coaching_call(s, intake, gateway)

    results = _race(session_factory, book)
    assert results.count("ok") == 1

    s = session_factory()
    try:
        keys = [r.slot_key for r in s.query(BookedSlot).all()]
        assert len(keys) == len(set(keys))
        assert s.query(CoachingCall).count() == 1
    finally:
        s.close()
