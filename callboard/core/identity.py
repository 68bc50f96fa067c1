"""Session identity resolution.

Token acquisition belongs to the external identity provider; this module only
verifies the signed session it hands out and maps it to a stable user id.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple

from jose import JWTError, jwt

from callboard.core.config import Settings, settings as default_settings
from callboard.core.exceptions import NotAuthenticated
from callboard.models import Identity, Profile

if TYPE_CHECKING:
    from callboard.stores.profiles import ProfileStore

logger = logging.getLogger(__name__)


def create_access_token(
    user_id: str,
    email: str,
    expires_delta: timedelta | None = None,
    claims: Optional[Dict[str, Any]] = None,
    config: Optional[Settings] = None,
) -> str:
    config = config or default_settings
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload: Dict[str, Any] = {
        "sub": user_id,
        "email": email,
        "exp": expire,
        "iat": now,
    }
    if claims:
        payload.update(claims)
    return jwt.encode(payload, config.SECRET_KEY, algorithm=config.JWT_ALGORITHM)


class IdentityResolver:
    """Verify session tokens and keep a short-lived cache of the caller's profile."""

    def __init__(
        self,
        profiles: "ProfileStore",
        config: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.profiles = profiles
        self.config = config or default_settings
        self._clock = clock
        self._profile_cache: Dict[str, Tuple[float, Profile]] = {}

    def resolve(self, token: str) -> Identity:
        try:
            payload = jwt.decode(token, self.config.SECRET_KEY, algorithms=[self.config.JWT_ALGORITHM])
        except JWTError as exc:
            logger.info("Rejected session token: %s", exc)
            raise NotAuthenticated() from exc

        subject = payload.get("sub")
        if not subject:
            raise NotAuthenticated("Session token carries no subject")
        return Identity(user_id=str(subject), email=str(payload.get("email", "")))

    async def profile_for(self, identity: Identity) -> Optional[Profile]:
        """Return the caller's profile, served from cache while it is fresh."""

        cached = self._profile_cache.get(identity.user_id)
        now = self._clock()
        if cached and now - cached[0] < self.config.PROFILE_CACHE_TTL_SECONDS:
            return cached[1]

        profile = await self.profiles.get_profile(identity.user_id)
        if profile is None:
            self._profile_cache.pop(identity.user_id, None)
            return None
        self._profile_cache[identity.user_id] = (now, profile)
        return profile

    def invalidate(self, user_id: str) -> None:
        self._profile_cache.pop(user_id, None)


__all__ = ["IdentityResolver", "create_access_token"]
