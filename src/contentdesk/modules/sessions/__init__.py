"""Sessions module - desk sessions opened with a shared secret."""

from fastapi import APIRouter


router = APIRouter(prefix="/sessions", tags=["sessions"])

# Module metadata
__module_info__ = {
    "name": "sessions",
    "version": "1.0.0",
    "description": "Desk sessions, live views and notices",
    "dependencies": ["tenants", "records"],
}


def register_routes() -> None:
    """Register routes - called after all imports are complete."""
    from contentdesk.modules.sessions import routes  # noqa: F401, PLC0415
