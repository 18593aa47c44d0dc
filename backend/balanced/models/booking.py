from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Enum,
    DateTime,
    ForeignKey,
    CheckConstraint,
)
import enum
from ..database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConsultationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class CallStatus(str, enum.Enum):
    PENDING = "pending"      # created, slot held, waiting for payment
    PAID = "paid"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"  # terminal, slot released


class ConsultationRequest(Base):
    """Free 30 minute intro call."""

    __tablename__ = "consultation_requests"

    id = Column(Integer, primary_key=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)
    contact_method = Column(String(20), nullable=False)
    selected_time_slot = Column(String(50), nullable=False)

    # intake
    goals = Column(Text, nullable=False)
    experience = Column(Text, nullable=True)
    eating_out = Column(String(255), nullable=True)
    typical_day = Column(Text, nullable=True)
    drinks = Column(Text, nullable=True)
    emotional_eating = Column(Text, nullable=True)
    medications = Column(Text, nullable=True)

    status = Column(Enum(ConsultationStatus), nullable=False, default=ConsultationStatus.PENDING)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class CoachingCall(Base):
    """Paid 30/45/60 minute call."""

    __tablename__ = "coaching_calls"

    id = Column(Integer, primary_key=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)
    contact_method = Column(String(20), nullable=False, default="email")
    selected_time_slot = Column(String(50), nullable=False)
    goals = Column(Text, nullable=True)

    duration_minutes = Column(Integer, nullable=False)
    amount_cents = Column(Integer, nullable=False)
    payment_reference = Column(String, nullable=True, index=True)
    status = Column(Enum(CallStatus), nullable=False, default=CallStatus.PENDING)
    rollover_minutes = Column(Integer, nullable=False, default=0)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class BookedSlot(Base):
    """
    One reserved 30 minute unit. The unique slot_key is what prevents double
    booking; 45/60 minute calls own a primary row plus a secondary row for the
    next half hour.
    """

    __tablename__ = "booked_slots"

    id = Column(Integer, primary_key=True)
    slot_key = Column(String(50), unique=True, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=30)
    is_secondary = Column(Boolean, nullable=False, default=False)
    primary_slot_id = Column(
        Integer, ForeignKey("booked_slots.id", ondelete="CASCADE"), nullable=True, index=True
    )

    consultation_request_id = Column(
        Integer, ForeignKey("consultation_requests.id", ondelete="CASCADE"), nullable=True, index=True
    )
    coaching_call_id = Column(
        Integer, ForeignKey("coaching_calls.id", ondelete="CASCADE"), nullable=True, index=True
    )
    booked_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint(
            "(consultation_request_id IS NULL) <> (coaching_call_id IS NULL)",
            name="booked_slot_single_owner",
        ),
    )
