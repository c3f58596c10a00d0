from ..utils.constants import ARTISTS_FILE_PATH
from ..utils.validation import clean_required, validate_url
from .registry import Registry

FIELDS = (
    "artist_name",
    "artist_instagram_username",
    "artist_soundcloud",
    "artist_spotify",
    "artist_beatport",
)

# field -> (label, expected host, service name)
URL_FIELDS = {
    "artist_soundcloud": ("SoundCloud URL", "soundcloud.com", "SoundCloud"),
    "artist_spotify": ("Spotify URL", "spotify.com", "Spotify"),
    "artist_beatport": ("Beatport URL", "beatport.com", "Beatport"),
}


def artist_registry(dropbox):
    return Registry(dropbox, ARTISTS_FILE_PATH, "artists")


def clean_artist(data):
    """Validate request data and return the trimmed artist fields."""
    artist = clean_required(data, FIELDS)
    for field, (label, host, service) in URL_FIELDS.items():
        validate_url(artist[field], label, host=host, service=service)
    return artist
