"""Records module - posts, the write queue and auto-publishing."""

from fastapi import APIRouter


router = APIRouter(prefix="/records", tags=["records"])

# Module metadata
__module_info__ = {
    "name": "records",
    "version": "1.0.0",
    "description": "Content records, debounced editing and auto-publish",
    "dependencies": ["tenants"],
}


def register_routes() -> None:
    """Register routes - called after all imports are complete."""
    from contentdesk.modules.records import routes  # noqa: F401, PLC0415
