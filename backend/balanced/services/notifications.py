"""
Notification sink. Booking flows call `notify` and move on: a failed email is
logged and reported as False, never raised.
"""
from __future__ import annotations

import logging
from html import escape
from typing import Callable

from .email_gmail import send_email_html

logger = logging.getLogger(__name__)

BRAND = "Balanced Method Coaching"

CONSULTATION_CONFIRMATION = "consultation_confirmation"
CONSULTATION_COACH_ALERT = "consultation_coach_alert"
COACHING_CALL_CONFIRMATION = "coaching_call_confirmation"
COACHING_CALL_COACH_ALERT = "coaching_call_coach_alert"
COURSE_ACCESS_GRANTED = "course_access_granted"

Notifier = Callable[[str, str, dict], bool]


def _wrap(body: str) -> str:
    return f"""
    <div style="max-width:600px;margin:0 auto;padding:20px;font-family:Arial,sans-serif;color:#111;font-size:15px">
      {body}
      <hr style="margin:30px 0;border:none;border-top:1px solid #e5e7eb">
      <small style="color:#6b7280">{BRAND}</small>
    </div>
    """


def _consultation_confirmation(p: dict) -> tuple[str, str, str]:
    subject = f"Consultation Call Confirmed - {BRAND}"
    html = _wrap(f"""
      <h2 style="color:#2563eb">Your Consultation Call is Confirmed!</h2>
      <p>Hi {escape(p['client_name'])},</p>
      <p>Thank you for booking your free introductory consultation call. Your appointment is confirmed for:</p>
      <p style="background:#f3f4f6;padding:15px;border-radius:8px"><b>{escape(p['slot_label'])}</b></p>
      <p>If you need to cancel or reschedule, please reply to this email as soon as possible.</p>
    """)
    text = f"Hi {p['client_name']}, your consultation call is confirmed for {p['slot_label']}."
    return subject, html, text


def _consultation_coach_alert(p: dict) -> tuple[str, str, str]:
    subject = f"New Consultation Booking - {p['client_name']}"
    html = _wrap(f"""
      <h2 style="color:#dc2626">New Consultation Booking</h2>
      <p><b>Client:</b> {escape(p['client_name'])}<br>
         <b>Email:</b> {escape(p['client_email'])}<br>
         <b>Phone:</b> {escape(p.get('client_phone') or '-')}<br>
         <b>Time Slot:</b> {escape(p['slot_label'])}</p>
      <p style="background:#fef3c7;padding:15px;border-radius:8px"><b>Client Goals:</b><br>{escape(p.get('goals') or '-')}</p>
    """)
    text = (
        f"New consultation booking from {p['client_name']} ({p['client_email']}) "
        f"for {p['slot_label']}. Goals: {p.get('goals') or '-'}"
    )
    return subject, html, text


def _coaching_call_confirmation(p: dict) -> tuple[str, str, str]:
    subject = f"Coaching Call Confirmed - {BRAND}"
    html = _wrap(f"""
      <h2 style="color:#2563eb">Your Coaching Call is Booked!</h2>
      <p>Hi {escape(p['client_name'])},</p>
      <p>We received your payment. Your {p['duration_minutes']} minute coaching call is booked for:</p>
      <p style="background:#f3f4f6;padding:15px;border-radius:8px"><b>{escape(p['slot_label'])}</b></p>
    """)
    text = (
        f"Hi {p['client_name']}, your {p['duration_minutes']} minute coaching call "
        f"is booked for {p['slot_label']}."
    )
    return subject, html, text


def _coaching_call_coach_alert(p: dict) -> tuple[str, str, str]:
    subject = f"New Paid Coaching Call - {p['client_name']}"
    amount = p["amount_cents"] / 100
    html = _wrap(f"""
      <h2 style="color:#dc2626">New Paid Coaching Call</h2>
      <p><b>Client:</b> {escape(p['client_name'])}<br>
         <b>Email:</b> {escape(p['client_email'])}<br>
         <b>Duration:</b> {p['duration_minutes']} minutes<br>
         <b>Paid:</b> ${amount:.2f}<br>
         <b>Time Slot:</b> {escape(p['slot_label'])}</p>
    """)
    text = (
        f"{p['client_name']} ({p['client_email']}) paid ${amount:.2f} for a "
        f"{p['duration_minutes']} minute call on {p['slot_label']}."
    )
    return subject, html, text


def _course_access_granted(p: dict) -> tuple[str, str, str]:
    subject = f"Your Course Access - {BRAND}"
    html = _wrap(f"""
      <p>Hi {escape(p['client_name'])},</p>
      <p>Your payment went through and the self-paced nutrition course is now unlocked in your account.</p>
    """)
    text = f"Hi {p['client_name']}, your course access is now active."
    return subject, html, text


_TEMPLATES = {
    CONSULTATION_CONFIRMATION: _consultation_confirmation,
    CONSULTATION_COACH_ALERT: _consultation_coach_alert,
    COACHING_CALL_CONFIRMATION: _coaching_call_confirmation,
    COACHING_CALL_COACH_ALERT: _coaching_call_coach_alert,
    COURSE_ACCESS_GRANTED: _course_access_granted,
}


def notify(kind: str, recipient: str | None, payload: dict) -> bool:
    if not recipient:
        logger.warning("notification %s skipped: no recipient", kind)
        return False
    render = _TEMPLATES.get(kind)
    if render is None:
        logger.error("unknown notification kind %r", kind)
        return False
    try:
        subject, html, text = render(payload)
        return send_email_html(recipient, subject, html, text)
    except Exception:
        logger.exception("notification %s to %s failed", kind, recipient)
        return False


def get_notifier() -> Notifier:
    return notify
