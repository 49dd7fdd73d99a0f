"""Access token verification.

Tokens are issued by the external identity provider; this service only
verifies them and reads the actor id from ``sub``.
"""

import logging
from typing import Optional

from jose import JWTError, jwt

from readshare.core.config import settings

logger = logging.getLogger(__name__)


def decode_access_token(token: str) -> Optional[dict]:
    """Return the token claims, or ``None`` when the token does not verify."""
    try:
        return jwt.decode(token, settings.auth_secret, algorithms=[settings.auth_algorithm])
    except JWTError as e:
        logger.info(f"Rejected access token: {e}")
        return None
