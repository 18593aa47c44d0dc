import base64
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from googleapiclient.discovery import build
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from ..config import settings

logger = logging.getLogger(__name__)

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.send"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


def gmail_configured() -> bool:
    return bool(
        settings.GOOGLE_CLIENT_ID
        and settings.GOOGLE_CLIENT_SECRET
        and settings.GOOGLE_REFRESH_TOKEN
        and settings.EMAIL_FROM
    )


def _gmail_service():
    """Gmail client from an installed-app refresh token."""
    creds = Credentials(
        token=None,
        refresh_token=settings.GOOGLE_REFRESH_TOKEN,
        token_uri=TOKEN_URI,
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        scopes=GMAIL_SCOPES,
    )
    creds.refresh(Request())
    return build("gmail", "v1", credentials=creds, cache_discovery=False)


def send_email_html(to: str, subject: str, html: str, text: str | None = None) -> bool:
    """
    Send an HTML email through the Gmail API. Returns False without sending
    when Gmail is not configured (dev). API errors propagate.
    """
    if not gmail_configured():
        logger.info("[DEV] Gmail not configured, not sending to %s: %s", to, subject)
        logger.debug("%s", text or html)
        return False

    msg = build_message(to, subject, html, text)

    # Gmail wants URL-safe base64
    raw = base64.urlsafe_b64encode(msg.as_bytes()).decode("utf-8")

    svc = _gmail_service()
    svc.users().messages().send(userId="me", body={"raw": raw}).execute()
    return True


def build_message(to: str, subject: str, html: str, text: str | None = None):
    """HTML message, with a plain-text alternative when `text` is given."""
    if text:
        msg = MIMEMultipart("alternative")
        # clients pick the last part they can render
        msg.attach(MIMEText(text, "plain", "utf-8"))
        msg.attach(MIMEText(html, "html", "utf-8"))
    else:
        msg = MIMEText(html, "html", "utf-8")
    msg["to"] = to
    if settings.EMAIL_FROM:
        msg["from"] = settings.EMAIL_FROM
    msg["subject"] = subject
    return msg
