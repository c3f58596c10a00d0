from ..utils.constants import CACHE_KEY_DEMO_SUBMISSION_ENABLED

DEFAULT_DEMO_SUBMISSION_ENABLED = True


def get_demo_submission_enabled(cache):
    enabled = cache.get(CACHE_KEY_DEMO_SUBMISSION_ENABLED)
    if isinstance(enabled, bool):
        return enabled
    return DEFAULT_DEMO_SUBMISSION_ENABLED


def set_demo_submission_enabled(cache, enabled):
    # No TTL: the flag persists until changed
    cache.set(CACHE_KEY_DEMO_SUBMISSION_ENABLED, bool(enabled))
    return bool(enabled)
