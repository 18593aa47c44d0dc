from balanced.core import time_slots as ts
from balanced.services import notifications

from conftest import auth_headers, make_user


def test_course_requires_login(client):
    assert client.get("/api/course").status_code == 401
    assert client.post("/api/create-payment-intent").status_code == 401


def test_course_gate(client, user_headers, admin_headers):
    assert client.get("/api/course", headers=user_headers).status_code == 403
    # admins see the content without buying it
    r = client.get("/api/course", headers=admin_headers)
    assert r.status_code == 200
    assert len(r.json()["lessons"]) == 12


def test_purchase_and_unlock(client, db, gateway, outbox):
    user = make_user(db, "buyer@example.com")
    headers = auth_headers(user)

    r = client.post("/api/create-payment-intent", headers=headers)
    assert r.status_code == 200
    ref = r.json()["paymentIntentId"]
    assert gateway.intents[ref]["amount"] == 9700
    assert gateway.intents[ref]["metadata"]["type"] == "course"

    r = client.post("/api/confirm-course-payment", json={"paymentIntentId": ref}, headers=headers)
    assert r.status_code == 400
    assert client.get("/api/course", headers=headers).status_code == 403

    gateway.succeed(ref)
    r = client.post("/api/confirm-course-payment", json={"paymentIntentId": ref}, headers=headers)
    assert r.json() == {"success": True, "hasCourseAccess": True}
    assert outbox.kinds() == [notifications.COURSE_ACCESS_GRANTED]
    assert client.get("/api/course", headers=headers).status_code == 200

    # already unlocked
    assert client.post("/api/create-payment-intent", headers=headers).status_code == 400
    assert client.get("/api/auth/user", headers=headers).json()["hasCourseAccess"] is True


def test_confirm_needs_a_reference(client, user_headers):
    r = client.post("/api/confirm-course-payment", json={}, headers=user_headers)
    assert r.status_code == 400


def test_coaching_call_payment_does_not_unlock_course(client, db, gateway, upcoming):
    intent = client.post(
        "/api/coaching-calls/create-payment-intent",
        json={
            "firstName": "Sam", "lastName": "Lee", "email": "sam@example.com",
            "phone": "555", "selectedTimeSlot": ts.make_slot_key(upcoming, "9am"), "duration": 30,
        },
    ).json()
    gateway.succeed(intent["paymentIntentId"])

    headers = auth_headers(make_user(db, "freeloader@example.com"))
    r = client.post("/api/confirm-course-payment", json={"paymentIntentId": intent["paymentIntentId"]}, headers=headers)
    assert r.status_code == 400
    assert client.get("/api/course", headers=headers).status_code == 403


def test_another_users_course_payment_is_rejected(client, db, gateway):
    buyer = auth_headers(make_user(db, "buyer@example.com"))
    other = auth_headers(make_user(db, "other@example.com"))

    ref = client.post("/api/create-payment-intent", headers=buyer).json()["paymentIntentId"]
    gateway.succeed(ref)

    r = client.post("/api/confirm-course-payment", json={"paymentIntentId": ref}, headers=other)
    assert r.status_code == 400
    assert client.get("/api/course", headers=other).status_code == 403
    # the real buyer can still use it
    r = client.post("/api/confirm-course-payment", json={"paymentIntentId": ref}, headers=buyer)
    assert r.json()["hasCourseAccess"] is True


def test_underpaid_course_intent_is_rejected(client, db, gateway):
    user = make_user(db, "cheap@example.com")
    handle = gateway.create_payment_intent(100, {"type": "course", "userId": user.id})
    gateway.succeed(handle.reference)

    r = client.post(
        "/api/confirm-course-payment", json={"paymentIntentId": handle.reference}, headers=auth_headers(user)
    )
    assert r.status_code == 400
