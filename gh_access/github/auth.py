"""GitHub App authentication.

Handles JWT generation for GitHub App auth. Nothing here is cached: the App
identity is rebuilt from settings on each request and a new JWT is signed
for every upstream call that authenticates as the App.

GitHub App auth flow:
1. Generate a JWT signed with the App's private key (this module)
2. Exchange the JWT for a short-lived installation access token (client.py)
3. Use the installation token for API calls scoped to that installation
"""

import time
from dataclasses import dataclass
from typing import Optional

import jwt
from cryptography.hazmat.primitives.asymmetric import rsa

from gh_access.core.config import Settings
from gh_access.github.errors import ConfigError
from gh_access.github.keys import load_private_key

JWT_BACKDATE_SECONDS = 60
JWT_LIFETIME_SECONDS = 600


@dataclass(frozen=True)
class AppIdentity:
    app_id: str
    private_key: rsa.RSAPrivateKey


def load_app_identity(settings: Settings) -> AppIdentity:
    """Build the App identity from configuration.

    Raises ConfigError when the App ID is missing or the key does not load.
    """
    if not settings.github_app_id:
        raise ConfigError("Missing GITHUB_APP_ID")

    private_key = load_private_key(
        settings.github_app_private_key,
        settings.github_app_private_key_base64,
    )
    return AppIdentity(app_id=settings.github_app_id, private_key=private_key)


def create_app_jwt(identity: AppIdentity, now: Optional[int] = None) -> str:
    """Create a JWT for authenticating as the GitHub App.

    GitHub rejects an `exp` more than 10 minutes in the future. `iat` is
    backdated 60 seconds to tolerate clock drift between us and GitHub, so
    `exp - iat` is 660 seconds.
    """
    issued_at = int(time.time()) if now is None else now
    payload = {
        "iat": issued_at - JWT_BACKDATE_SECONDS,
        "exp": issued_at + JWT_LIFETIME_SECONDS,
        "iss": identity.app_id,
    }
    return jwt.encode(payload, identity.private_key, algorithm="RS256")
