"""Tenant database models."""

from typing import Any

from sqlalchemy import JSON, Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from contentdesk.core.constants import MAX_NAME_LENGTH, MAX_SECRET_LENGTH
from contentdesk.core.database.base import Base, TimestampMixin, UUIDMixin


class Tenant(Base, UUIDMixin, TimestampMixin):
    """Tenant model representing one client brand managed by the agency.

    All tenant-scoped data references this table via tenant_id and is
    deleted with it.

    Attributes:
        name: Display name of the client
        secret: Shared numeric access code, unique across tenants
        is_super: Whether this is the agency tenant that sees every client
        brand_name: Brand name given to the caption generator
        brand_mission: Free-text brand mission
        brand_tone: Free-text description of the brand voice
        brand_keywords: Ordered list of brand keywords
        agency_notes: Agency-only notes about the client
        contact_name: Client contact person
        contact_email: Client contact address
        integration_accounts: Scheduling accounts this tenant may auto-publish to,
            stored as ``[{"platform": ..., "account_id": ...}]``
    """

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=False,
        index=True,
    )
    secret: Mapped[str] = mapped_column(
        String(MAX_SECRET_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )
    is_super: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Brand configuration
    brand_name: Mapped[str] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=False,
    )
    brand_mission: Mapped[str | None] = mapped_column(Text, nullable=True)
    brand_tone: Mapped[str | None] = mapped_column(Text, nullable=True)
    brand_keywords: Mapped[list[str]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )

    agency_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact_name: Mapped[str | None] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=True,
    )
    contact_email: Mapped[str | None] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=True,
    )

    # Integration configuration
    integration_accounts: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, name={self.name}, is_super={self.is_super})>"
