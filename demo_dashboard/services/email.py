import base64
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr

import requests

logger = logging.getLogger(__name__)

GMAIL_SEND_URL = "https://gmail.googleapis.com/gmail/v1/users/me/messages/send"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
REQUEST_TIMEOUT = 30


class EmailError(Exception):
    pass


def build_message(sender_email, sender_name, to_email, subject, html_body, text_body):
    """Compose a multipart/alternative message and return it base64url encoded."""
    msg = MIMEMultipart("alternative")
    msg["From"] = formataddr((sender_name, sender_email))
    msg["To"] = str(to_email)
    msg["Subject"] = subject

    msg.attach(MIMEText(text_body or "Please view this email in HTML format", "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))

    return base64.urlsafe_b64encode(msg.as_bytes()).decode("ascii").rstrip("=")


class GmailMailer:
    """Sends mail through the Gmail API using an OAuth2 refresh token."""

    def __init__(
        self,
        client_id,
        client_secret,
        refresh_token,
        sender_email,
        sender_name,
        access_token=None,
        session=None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.sender_email = sender_email
        self.sender_name = sender_name
        self.access_token = access_token
        self.session = session or requests.Session()

        if not self.is_configured():
            logger.warning("Gmail API credentials not fully configured")

    @classmethod
    def from_config(cls, config):
        return cls(
            config.GMAIL_CLIENT_ID,
            config.GMAIL_CLIENT_SECRET,
            config.GMAIL_REFRESH_TOKEN,
            config.LABEL_SENDER_EMAIL,
            config.LABEL_NAME,
            access_token=config.GMAIL_ACCESS_TOKEN,
        )

    def is_configured(self):
        return bool(self.client_id and self.client_secret and self.refresh_token)

    def _get_access_token(self):
        if self.access_token:
            return self.access_token

        response = self.session.post(
            GOOGLE_TOKEN_URL,
            json={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": self.refresh_token,
                "grant_type": "refresh_token",
            },
            timeout=REQUEST_TIMEOUT,
        )
        if not response.ok:
            raise EmailError(f"Token refresh failed: {response.status_code} {response.text[:200]}")

        self.access_token = response.json().get("access_token")
        if not self.access_token:
            raise EmailError("Failed to obtain access token")
        return self.access_token

    def _post(self, raw):
        return self.session.post(
            GMAIL_SEND_URL,
            headers={"Authorization": f"Bearer {self._get_access_token()}"},
            json={"raw": raw},
            timeout=REQUEST_TIMEOUT,
        )

    def send(self, to_email, subject, html_body, text_body=None):
        """Send one message and return the Gmail message id."""
        if not self.is_configured():
            raise EmailError("Email service not configured")

        raw = build_message(
            self.sender_email, self.sender_name, to_email, subject, html_body, text_body
        )
        response = self._post(raw)

        # Expired access token: refresh once and retry
        if response.status_code == 401:
            logger.info("Gmail access token expired, refreshing")
            self.access_token = None
            response = self._post(raw)

        if not response.ok:
            raise EmailError(f"Failed to send email: {response.status_code} {response.text[:200]}")

        message_id = response.json().get("id")
        logger.info(f"Email sent to {to_email}: {message_id}")
        return message_id
