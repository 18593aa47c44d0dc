# backend/tests/conftest.py
import os

# settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("COACH_EMAIL", "coach@example.com")
os.environ.setdefault("PENDING_CALL_HOLD_MINUTES", "60")

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from balanced.core import time_slots as ts
from balanced.core.errors import PaymentServiceError
from balanced.core.security import create_access_token, hash_password
from balanced.database import get_db, init_db
from balanced.main import app
from balanced.models.availability import AvailabilityWindow, SlotTemplate
from balanced.models.user import User
from balanced.services.availability import today_in_zone
from balanced.services.notifications import get_notifier
from balanced.services.payments import PaymentIntentHandle, PaymentStatus, get_payment_gateway


class FakeGateway:
    """In-memory stand-in for Stripe."""

    def __init__(self):
        self.intents: dict[str, dict] = {}
        self.fail_create = False

    def create_payment_intent(self, amount_cents, metadata=None):
        if self.fail_create:
            raise PaymentServiceError("Could not start the payment, please try again")
        ref = f"pi_test_{len(self.intents) + 1}"
        # Stripe stores metadata values as strings
        meta = {k: str(v) for k, v in (metadata or {}).items()}
        self.intents[ref] = {"amount": amount_cents, "metadata": meta, "status": "requires_payment_method"}
        return PaymentIntentHandle(reference=ref, client_secret=f"{ref}_secret")

    def succeed(self, ref):
        self.intents[ref]["status"] = "succeeded"

    def get_payment_status(self, ref):
        intent = self.intents[ref]
        st = intent["status"]
        return PaymentStatus(
            succeeded=st == "succeeded", status=st, amount=intent["amount"], metadata=dict(intent["metadata"])
        )

    def cancel_payment_intent(self, ref):
        self.intents[ref]["status"] = "canceled"


class Outbox:
    """Recording notifier."""

    def __init__(self, ok=True):
        self.sent = []
        self.ok = ok

    def __call__(self, kind, recipient, payload):
        self.sent.append((kind, recipient, payload))
        return self.ok

    def kinds(self):
        return [k for k, _, _ in self.sent]


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def outbox():
    return Outbox()


@pytest.fixture
def client(session_factory, gateway, outbox):
    def override_get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notifier] = lambda: outbox
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_user(db, email, is_admin=False, has_course_access=False):
    u = User(
        email=email,
        password_hash=hash_password("password123"),
        first_name="Test",
        last_name="User",
        is_admin=is_admin,
        has_course_access=has_course_access,
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


@pytest.fixture
def admin_headers(db):
    return auth_headers(make_user(db, "admin@example.com", is_admin=True))


@pytest.fixture
def user_headers(db):
    return auth_headers(make_user(db, "client@example.com"))


def seed_schedule(db, start, end, days=("mon",), times=("9am",)):
    for dow in days:
        for tod in times:
            db.add(
                SlotTemplate(
                    day_of_week=dow,
                    time_of_day=tod,
                    value=ts.make_template_key(dow, tod),
                    label=f"{dow} {tod}",
                    is_active=True,
                )
            )
    db.add(AvailabilityWindow(start_date=start, end_date=end, is_active=True))
    db.commit()


def next_monday(after: date | None = None) -> date:
    """First Monday strictly after `after` (default: today in the booking zone)."""
    d = after or today_in_zone()
    return d + timedelta(days=(7 - d.weekday()) % 7 or 7)


@pytest.fixture
def upcoming(db):
    """Mon/Wed 9am-10am templates over the next three weeks. Returns the first Monday."""
    monday = next_monday()
    seed_schedule(
        db,
        monday - timedelta(days=1),
        monday + timedelta(days=20),
        days=("mon", "wed"),
        times=("9am", "930am", "10am"),
    )
    return monday
