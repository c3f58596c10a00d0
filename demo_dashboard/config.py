import os

from dotenv import load_dotenv

load_dotenv()


def _split_emails(value):
    return [email.strip().lower() for email in (value or "").split(",") if email.strip()]


class Config:
    """Settings read from the environment (and a local .env file)."""

    def __init__(self, **overrides):
        self.DROPBOX_APP_KEY = os.getenv("DROPBOX_APP_KEY", "")
        self.DROPBOX_APP_SECRET = os.getenv("DROPBOX_APP_SECRET", "")
        self.DROPBOX_REFRESH_TOKEN = os.getenv("DROPBOX_REFRESH_TOKEN", "")
        self.DROPBOX_ACCESS_TOKEN = os.getenv("DROPBOX_ACCESS_TOKEN", "")

        self.REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

        self.GMAIL_CLIENT_ID = os.getenv("GMAIL_CLIENT_ID", "")
        self.GMAIL_CLIENT_SECRET = os.getenv("GMAIL_CLIENT_SECRET", "")
        self.GMAIL_REFRESH_TOKEN = os.getenv("GMAIL_REFRESH_TOKEN", "")
        self.GMAIL_ACCESS_TOKEN = os.getenv("GMAIL_ACCESS_TOKEN") or None
        self.LABEL_SENDER_EMAIL = os.getenv("LABEL_SENDER_EMAIL", "office@collectingdots.com")
        self.LABEL_NAME = os.getenv("LABEL_NAME", "Collecting Dots Records")

        self.IDENTITY_USERINFO_URL = os.getenv("IDENTITY_USERINFO_URL", "")
        self.ALLOWED_EMAILS = _split_emails(os.getenv("ALLOWED_EMAILS"))
        self.OWNER_EMAILS = _split_emails(os.getenv("LABEL_OWNER_EMAIL"))
        self.ASSISTANT_EMAILS = _split_emails(os.getenv("ASSISTANT_EMAIL"))

        self.CRON_SECRET = os.getenv("CRON_SECRET", "")
        self.CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

        for key, value in overrides.items():
            setattr(self, key, value)
