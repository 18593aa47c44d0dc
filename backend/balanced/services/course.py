"""Self-paced course: purchase through the payment collaborator, then a simple access flag."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..config import settings
from ..core.errors import PaymentNotConfirmed, ValidationError
from ..models.user import User
from . import notifications
from .payments import PaymentGateway, PaymentIntentHandle

logger = logging.getLogger(__name__)

LESSONS = [
    {"id": 0, "title": "Introduction & Program Overview", "badge": "Start Here"},
    {"id": 1, "title": "Downloading MyFitnessPal", "badge": "Essential"},
    {"id": 2, "title": "Logging on MyFitnessPal", "badge": "Tutorial"},
    {"id": 3, "title": "Establishing Your Nutritional Goals", "badge": "Foundation"},
    {"id": 4, "title": "Roadmap to Achieving Your Nutritional Goals", "badge": "Strategy"},
    {"id": 5, "title": "Strategies to Achieving Your Nutritional Goals Over Time", "badge": "Long-term"},
    {"id": 6, "title": "Other Factors Influencing Fat Loss", "badge": "Advanced"},
    {"id": 7, "title": "Tracking Progress", "badge": "Monitoring"},
    {"id": 8, "title": "Progress Expectations and Interpreting Check-in Results", "badge": "Analysis"},
    {"id": 9, "title": "Breaking Through Plateaus", "badge": "Problem-solving"},
    {"id": 10, "title": "Post-Goal Mindset", "badge": "Maintenance"},
    {"id": 11, "title": "Getting Started & Closing Words", "badge": "Action Time"},
]


def has_access(user: User) -> bool:
    return bool(user.is_admin or user.has_course_access)


def start_course_purchase(user: User, gateway: PaymentGateway) -> PaymentIntentHandle:
    if user.has_course_access:
        raise ValidationError("You already have access to the course")
    return gateway.create_payment_intent(
        settings.COURSE_PRICE_CENTS,
        {"type": "course", "userId": user.id, "email": user.email},
    )


def confirm_course_payment(
    db: Session,
    user: User,
    payment_reference: str,
    gateway: PaymentGateway,
    notify: notifications.Notifier = notifications.notify,
) -> User:
    if not payment_reference:
        raise ValidationError("paymentIntentId is required")
    if user.has_course_access:
        return user

    status = gateway.get_payment_status(payment_reference)
    if not status.succeeded:
        logger.warning("course payment %s for user %s not confirmed (%s)", payment_reference, user.id, status.status)
        raise PaymentNotConfirmed()
    # the intent must be this user's course purchase, not any succeeded payment
    meta = status.metadata or {}
    if (
        meta.get("type") != "course"
        or meta.get("userId") != str(user.id)
        or status.amount != settings.COURSE_PRICE_CENTS
    ):
        logger.warning("course payment %s rejected for user %s: metadata %s, amount %s",
                       payment_reference, user.id, meta, status.amount)
        raise ValidationError("Payment does not belong to this course purchase")

    user.has_course_access = True
    db.commit()
    db.refresh(user)
    logger.info("course access granted to user %s", user.id)

    if not notify(notifications.COURSE_ACCESS_GRANTED, user.email, {"client_name": user.display_name}):
        logger.warning("course access email to user %s not sent", user.id)
    return user
