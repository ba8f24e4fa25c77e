"""Factory for Tenant model."""

from uuid import uuid4

from polyfactory.factories.pydantic_factory import ModelFactory
from pydantic import BaseModel


class TenantSeed(BaseModel):
    """Column values for a tenant row (for factory use)."""

    name: str
    secret: str
    is_super: bool = False
    brand_name: str
    brand_mission: str | None = None
    brand_tone: str | None = None
    brand_keywords: list[str] = []
    agency_notes: str | None = None
    contact_name: str | None = None
    contact_email: str | None = None
    integration_accounts: list[dict[str, str]] = []


class TenantFactory(ModelFactory[TenantSeed]):
    """Factory for generating Tenant test data."""

    __model__ = TenantSeed

    @classmethod
    def name(cls) -> str:
        """Generate a company name."""
        return f"{cls.__faker__.company()} {uuid4().hex[:4]}"

    @classmethod
    def secret(cls) -> str:
        """Generate a unique numeric access code."""
        return str(uuid4().int)[:8]

    @classmethod
    def is_super(cls) -> bool:
        return False

    @classmethod
    def brand_name(cls) -> str:
        return cls.__faker__.company()

    @classmethod
    def brand_keywords(cls) -> list[str]:
        return [cls.__faker__.word() for _ in range(3)]

    @classmethod
    def integration_accounts(cls) -> list[dict[str, str]]:
        return []

    @classmethod
    def contact_email(cls) -> str:
        return cls.__faker__.email()
