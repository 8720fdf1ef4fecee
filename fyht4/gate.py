# fyht4/gate.py
from dataclasses import dataclass
from enum import Enum
from typing import Optional

ELEVATE_PATH = "/api/admin/elevate"
GATED_PREFIXES = ("/admin", "/api/admin")
ADMIN_ROLE = "admin"


class Decision(Enum):
    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class IdentityToken:
    user_id: str
    email: Optional[str] = None
    role: Optional[str] = None


@dataclass(frozen=True)
class RequestDescriptor:
    path: str
    token: Optional[IdentityToken] = None


def is_gated(path: str) -> bool:
    """True para /admin, /admin/*, /api/admin y /api/admin/*."""
    path = path or "/"
    return any(path == p or path.startswith(p + "/") for p in GATED_PREFIXES)


def authorize(req: RequestDescriptor) -> Decision:
    # 1) elevación: basta con estar logueado
    if req.path == ELEVATE_PATH:
        return Decision.ALLOW if req.token is not None else Decision.DENY
    # 2) resto: rol admin exacto
    if req.token is not None and req.token.role == ADMIN_ROLE:
        return Decision.ALLOW
    return Decision.DENY


def token_from_session(session) -> Optional[IdentityToken]:
    uid = session.get("uid")
    if not uid:
        return None
    return IdentityToken(user_id=str(uid), email=session.get("email"), role=session.get("role"))
