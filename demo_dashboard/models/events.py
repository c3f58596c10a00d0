from ..utils.constants import EVENTS_FILE_PATH
from ..utils.validation import clean_optional, clean_required, validate_date, validate_url
from .registry import Registry

FIELDS = ("event_title", "location", "date", "times", "artists")
OPTIONAL_URL_FIELDS = {
    "event_external_url": "Event External URL",
    "event_instagram_post": "Event Instagram Post URL",
}


def event_registry(dropbox):
    return Registry(dropbox, EVENTS_FILE_PATH, "events")


def clean_event(data):
    """Validate request data and return the trimmed event fields.

    Optional URLs left blank are dropped from the record.
    """
    event = clean_required(data, FIELDS)
    validate_date(event["date"])

    optional = clean_optional(data, OPTIONAL_URL_FIELDS)
    for field, value in optional.items():
        validate_url(value, OPTIONAL_URL_FIELDS[field])
    event.update(optional)
    return event
