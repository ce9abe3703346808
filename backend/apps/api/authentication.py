from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional

from rest_framework.authentication import BaseAuthentication

from apps.common import get_logger

logger = get_logger(__name__).bind(component="api", layer="auth")

USERNAME_HEADER = "User-name"
AUTHORITIES_HEADER = "User-authorities"


def parse_authorities(raw: Optional[str]) -> List[str]:
    """Split ``"[a, b]"`` into ``["a", "b"]``; brackets optional, blanks dropped."""
    if not raw:
        return []
    value = raw.strip()
    if value.startswith("["):
        value = value[1:]
    if value.endswith("]"):
        value = value[:-1]
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass(frozen=True)
class HeaderPrincipal:
    """Caller identity as asserted by the upstream gateway."""

    username: str
    authorities: FrozenSet[str] = field(default_factory=frozenset)

    is_authenticated = True
    is_anonymous = False

    def has_authority(self, authority: str) -> bool:
        return authority in self.authorities

    def __str__(self):
        return self.username


class TrustedHeaderAuthentication(BaseAuthentication):
    """
    Reads the identity the gateway forwards in ``User-name`` and
    ``User-authorities``. No credential is checked here.

    A request without ``User-name`` stays anonymous. The class defines no
    ``authenticate_header`` so DRF answers unauthenticated access with 403.
    """

    def authenticate(self, request):
        username = (request.headers.get(USERNAME_HEADER) or "").strip()
        if not username:
            return None
        authorities = parse_authorities(request.headers.get(AUTHORITIES_HEADER))
        logger.debug(
            "Authenticated from gateway headers",
            username=username,
            authorities=len(authorities),
        )
        return HeaderPrincipal(username=username, authorities=frozenset(authorities)), None
