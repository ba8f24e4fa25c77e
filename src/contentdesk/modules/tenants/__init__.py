"""Tenants module - client brands, settings and the agency overview."""

from fastapi import APIRouter


router = APIRouter(prefix="/tenants", tags=["tenants"])

# Module metadata
__module_info__ = {
    "name": "tenants",
    "version": "1.0.0",
    "description": "Client tenants, brand and integration settings",
    "dependencies": [],
}


def register_routes() -> None:
    """Register routes - called after all imports are complete."""
    from contentdesk.modules.tenants import routes  # noqa: F401, PLC0415
