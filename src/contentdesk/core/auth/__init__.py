"""Session-start gate and request context middleware."""

from contentdesk.core.auth.gate import Privilege, SessionGrant, TenantGate
from contentdesk.core.auth.middleware import RequestIdMiddleware, SessionContextMiddleware


__all__ = [
    "Privilege",
    "RequestIdMiddleware",
    "SessionContextMiddleware",
    "SessionGrant",
    "TenantGate",
]
