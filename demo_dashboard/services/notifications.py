import logging
from datetime import datetime

from flask import current_app, render_template

from ..utils.constants import NOTIFICATION_LIKED, NOTIFICATION_REJECTED

logger = logging.getLogger(__name__)

SUBJECTS = {
    NOTIFICATION_LIKED: "Your Demo Has Caught Our Attention - {track_title}",
    NOTIFICATION_REJECTED: "Demo Review Update - {track_title}",
}


def render_notification(kind, artist_name, track_title, label_name):
    """Return ``(subject, html_body, text_body)`` for a notification kind."""
    context = {
        "artist_name": artist_name,
        "track_title": track_title,
        "label_name": label_name,
        "year": datetime.now().year,
    }
    subject = SUBJECTS[kind].format(track_title=track_title)
    html_body = render_template(f"email/demo_{kind}.html", **context)
    text_body = render_template(f"email/demo_{kind}.txt", **context).strip()
    return subject, html_body, text_body


def send_demo_notification(mailer, kind, metadata):
    """Notify the submitter about a review decision.

    Returns ``{"notification_sent": bool, "error": str | None}``; failures are
    logged and reported, never raised.
    """
    if not mailer.is_configured():
        logger.warning("Email service not configured, skipping notification")
        return {"notification_sent": False, "error": "Email service not configured"}

    to_email = metadata.get("email")
    if not to_email:
        return {"notification_sent": False, "error": "Demo metadata has no email address"}

    try:
        subject, html_body, text_body = render_notification(
            kind,
            metadata.get("artist_name", ""),
            metadata.get("track_title", ""),
            current_app.config["LABEL_NAME"],
        )
        mailer.send(to_email, subject, html_body, text_body)
    except Exception as e:
        logger.warning(f"Failed to send {kind} notification to {to_email}: {e}")
        return {"notification_sent": False, "error": str(e)}

    return {"notification_sent": True, "error": None}
