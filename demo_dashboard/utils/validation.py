import re
from urllib.parse import urlparse

DATE_PATTERN = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")


class ValidationError(ValueError):
    pass


def clean_required(data, fields):
    """Return the trimmed values of ``fields``, all of which must be non-blank strings."""
    values = {}
    for field in fields:
        value = data.get(field)
        if not value:
            raise ValidationError("All fields are required")
        if not isinstance(value, str):
            raise ValidationError(f"{field} must be a string")
        values[field] = value.strip()

    if any(not value for value in values.values()):
        raise ValidationError("All fields must contain actual text")
    return values


def clean_optional(data, fields):
    """Return trimmed values for the ``fields`` that were given and non-blank."""
    values = {}
    for field in fields:
        value = data.get(field)
        if isinstance(value, str) and value.strip():
            values[field] = value.strip()
    return values


def validate_url(url, label, host=None, service=None):
    """Check that ``url`` is an http(s) URL, optionally on ``host`` or a subdomain of it."""
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        if parsed.scheme and parsed.netloc:
            raise ValidationError(f"{label}: URL must start with http:// or https://")
        raise ValidationError(f"{label}: Please enter a valid {service + ' ' if service else ''}URL")

    if host:
        hostname = (parsed.hostname or "").lower()
        if hostname != host and not hostname.endswith("." + host):
            raise ValidationError(f"{label}: Must be a {service} URL ({host})")


def validate_date(value):
    """Check a ``DD/MM/YYYY`` date."""
    match = DATE_PATTERN.match(value.strip())
    if not match:
        raise ValidationError("Date must be in format DD/MM/YYYY (15/11/2025)")

    day, month, year = (int(part) for part in match.groups())
    if not (1 <= day <= 31 and 1 <= month <= 12 and 1900 <= year <= 2100):
        raise ValidationError("Please enter a valid date")
