from __future__ import annotations
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from ..models.booking import CallStatus, ConsultationStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# -----------------------------
# Public slot list
# -----------------------------

class SlotOptionOut(BaseModel):
    value: str  # "2025-06-16-9am"
    label: str  # "Monday, June 16, 2025 at 9:00 AM"


# -----------------------------
# Intake
# -----------------------------

class ContactIn(CamelModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(min_length=1, max_length=20)
    contact_method: str = Field("email", min_length=1, max_length=20)
    selected_time_slot: str = Field(min_length=1, max_length=50)


class ConsultationRequestIn(ContactIn):
    goals: str = Field(min_length=1)
    experience: Optional[str] = None
    eating_out: Optional[str] = Field(None, max_length=255)
    typical_day: Optional[str] = None
    drinks: Optional[str] = None
    emotional_eating: Optional[str] = None
    medications: Optional[str] = None


class CoachingCallIn(ContactIn):
    """The client form also posts an `amount`; it is ignored, prices are server side."""
    duration: int
    goals: Optional[str] = None


class ConfirmPaymentIn(CamelModel):
    payment_intent_id: Optional[str] = None


# -----------------------------
# Output
# -----------------------------

class ConsultationRequestOut(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    contact_method: str
    selected_time_slot: str
    goals: str
    experience: Optional[str] = None
    eating_out: Optional[str] = None
    typical_day: Optional[str] = None
    drinks: Optional[str] = None
    emotional_eating: Optional[str] = None
    medications: Optional[str] = None
    status: ConsultationStatus
    created_at: Optional[datetime] = None


class CoachingCallOut(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    contact_method: str
    selected_time_slot: str
    goals: Optional[str] = None
    duration_minutes: int
    amount_cents: int
    payment_reference: Optional[str] = None
    status: CallStatus
    rollover_minutes: int = 0
    created_at: Optional[datetime] = None


class PaymentIntentOut(CamelModel):
    client_secret: str
    call_id: int
    payment_intent_id: str
    amount: int


class CallStatusIn(CamelModel):
    status: CallStatus


class BookedSlotOut(CamelModel):
    id: int
    slot_key: str
    duration_minutes: int
    is_secondary: bool
    primary_slot_id: Optional[int] = None
    consultation_request_id: Optional[int] = None
    coaching_call_id: Optional[int] = None
    booked_at: Optional[datetime] = None
