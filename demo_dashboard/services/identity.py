import hashlib
import logging

import requests

from ..utils.constants import CACHE_KEY_SESSION_PREFIX, SESSION_CACHE_TTL

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10


class IdentityError(Exception):
    pass


class IdentityClient:
    """Resolves a session bearer token to the signed-in user's email.

    The identity provider exposes an OIDC userinfo endpoint; successful lookups
    are cached briefly under a hash of the token.
    """

    def __init__(self, userinfo_url, cache, session=None):
        self.userinfo_url = userinfo_url
        self.cache = cache
        self.session = session or requests.Session()

    def _cache_key(self, token):
        return CACHE_KEY_SESSION_PREFIX + hashlib.sha256(token.encode("utf-8")).hexdigest()

    def resolve_email(self, token):
        """Return the lowercased email for ``token``, or None if it is not valid."""
        key = self._cache_key(token)
        try:
            cached = self.cache.get(key)
        except Exception as e:
            logger.warning(f"Could not read session cache: {e}")
            cached = None
        if cached:
            return cached.get("email")

        if not self.userinfo_url:
            raise IdentityError("IDENTITY_USERINFO_URL is not set")

        try:
            response = self.session.get(
                self.userinfo_url,
                headers={"Authorization": f"Bearer {token}"},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise IdentityError(f"Identity provider unreachable: {e}") from e

        if response.status_code in (401, 403):
            return None
        if not response.ok:
            raise IdentityError(f"Identity provider error: {response.status_code}")

        email = (response.json().get("email") or "").strip().lower()
        if not email:
            return None

        try:
            self.cache.set(key, {"email": email}, ex=SESSION_CACHE_TTL)
        except Exception as e:
            logger.warning(f"Could not cache session: {e}")
        return email
