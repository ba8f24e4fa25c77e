"""Scheduling service client.

Talks to the social scheduling proxy (Late). Upstream responses are
loosely shaped, so everything that comes back goes through
``normalize_profiles`` / ``normalize_schedule_response`` before the rest of
the application sees it.
"""

from datetime import datetime
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, Field, field_validator

from contentdesk.config import settings
from contentdesk.core.constants import DATA_URL_PREFIX, MAX_PLATFORM_LENGTH
from contentdesk.core.errors import SchedulingFailed, ServiceUnavailableError


logger = structlog.get_logger()


class PlatformAccount(BaseModel):
    """One scheduling-service account on one platform."""

    platform: str = Field(..., min_length=1, max_length=MAX_PLATFORM_LENGTH)
    account_id: str = Field(..., min_length=1)

    @field_validator("platform")
    @classmethod
    def normalize_platform(cls, v: str) -> str:
        """Platforms are compared lowercase."""
        return v.strip().lower()


class SchedulingProfile(BaseModel):
    """A connected account as reported by the scheduling service."""

    id: str
    platform: str
    username: str = ""
    profile_picture: str = ""


class ScheduleRequest(BaseModel):
    """A post to schedule on one or more accounts in a single call."""

    accounts: list[PlatformAccount]
    content: str
    media_url: str | None = None
    media_kind: str = "image"
    when_utc: datetime
    timezone: str = "Australia/Sydney"


class ScheduleResult(BaseModel):
    """Outcome of a successful schedule call."""

    scheduled_id: str | None = None


def is_public_media(url: str | None) -> bool:
    """Whether the scheduling service can fetch the media itself."""
    return bool(url) and not url.startswith(DATA_URL_PREFIX)  # type: ignore[union-attr]


def _first(item: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = item.get(key)
        if value:
            return value
    return default


def normalize_profiles(data: Any) -> list[SchedulingProfile]:
    """Map the upstream profile listing onto ``SchedulingProfile``.

    The service has returned a bare list as well as lists wrapped under
    ``profiles``, ``connections``, ``accounts`` or ``data``; entries without
    any id are dropped.
    """
    if isinstance(data, list):
        items = data
    elif isinstance(data, dict):
        items = []
        for key in ("profiles", "connections", "accounts", "data"):
            if key in data and data[key]:
                value = data[key]
                items = value if isinstance(value, list) else [value]
                break
    else:
        items = []

    profiles = []
    for item in items:
        if not isinstance(item, dict):
            continue
        profile_id = _first(item, "id", "_id", "accountId", "account_id")
        if not profile_id:
            continue
        profiles.append(
            SchedulingProfile(
                id=str(profile_id),
                platform=str(_first(item, "platform", "network", "type", default="unknown")),
                username=str(
                    _first(
                        item,
                        "username",
                        "name",
                        "handle",
                        "displayName",
                        "display_name",
                        default="",
                    )
                ),
                profile_picture=str(
                    _first(
                        item,
                        "profilePicture",
                        "profile_picture",
                        "avatar",
                        "image",
                        "picture",
                        default="",
                    )
                ),
            )
        )
    return profiles


def normalize_schedule_response(data: Any) -> ScheduleResult:
    """Extract the scheduled post id from a schedule response."""
    if not isinstance(data, dict):
        return ScheduleResult()
    post = data.get("post") if isinstance(data.get("post"), dict) else data
    scheduled_id = _first(post, "id", "_id", "postId", "post_id")
    return ScheduleResult(scheduled_id=str(scheduled_id) if scheduled_id else None)


def error_message(response: httpx.Response) -> str:
    """Best human-readable reason from an error response."""
    try:
        data = response.json()
    except ValueError:
        return response.text or f"Scheduling API error: {response.status_code}"
    if isinstance(data, dict):
        for key in ("message", "error", "detail"):
            if data.get(key):
                return str(data[key])
    return f"Scheduling API error: {response.status_code}"


class SchedulingClient:
    """HTTP client for the scheduling service.

    Example:
        client = SchedulingClient()
        result = await client.schedule(request)
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        media_required_platforms: list[str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.scheduler_api_base).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.scheduler_api_key
        self.timeout = timeout or settings.scheduler_timeout_seconds
        self.media_required_platforms = {
            p.lower()
            for p in (
                media_required_platforms
                if media_required_platforms is not None
                else settings.media_required_platforms
            )
        }
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def media_platforms(self, accounts: list[PlatformAccount]) -> list[str]:
        """Platforms among ``accounts`` that refuse posts without media."""
        return sorted(
            {a.platform for a in accounts if a.platform in self.media_required_platforms}
        )

    def requires_media(self, accounts: list[PlatformAccount]) -> bool:
        """Whether any of the accounts is on a platform that needs media."""
        return bool(self.media_platforms(accounts))

    def _client(self) -> httpx.AsyncClient:
        if not self.api_key:
            raise ServiceUnavailableError("Scheduling API key not configured")
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )

    def build_payload(self, request: ScheduleRequest) -> dict[str, Any]:
        """Render a schedule request in the service's wire format."""
        payload: dict[str, Any] = {
            "platforms": [
                {"platform": account.platform, "accountId": account.account_id}
                for account in request.accounts
            ],
            "content": request.content,
            "scheduledFor": request.when_utc.isoformat(),
            "timezone": request.timezone,
            "publishNow": False,
            "isDraft": False,
        }
        if is_public_media(request.media_url):
            payload["mediaItems"] = [{"type": request.media_kind, "url": request.media_url}]
        return payload

    async def schedule(self, request: ScheduleRequest) -> ScheduleResult:
        """Schedule one post on every account in the request.

        Raises:
            SchedulingFailed: If the request is rejected or the call fails
            ServiceUnavailableError: If no API key is configured
        """
        if not request.accounts:
            raise SchedulingFailed("No platform accounts to publish to")
        platforms = self.media_platforms(request.accounts)
        if platforms and not is_public_media(request.media_url):
            names = ", ".join(p.title() for p in platforms)
            raise SchedulingFailed(
                f"{names} posts require media content (images or videos)",
                details={"platforms": platforms},
            )

        payload = self.build_payload(request)
        async with self._client() as client:
            try:
                response = await client.post("/posts", json=payload)
            except httpx.HTTPError as e:
                logger.error("schedule_request_failed", error=str(e))
                raise SchedulingFailed(f"Scheduling service unreachable: {e}") from e

        if response.is_error:
            reason = error_message(response)
            logger.warning(
                "schedule_rejected",
                status_code=response.status_code,
                reason=reason,
            )
            raise SchedulingFailed(reason, details={"upstream_status": response.status_code})

        try:
            data = response.json()
        except ValueError:
            data = {}
        result = normalize_schedule_response(data)
        logger.info(
            "post_scheduled",
            scheduled_id=result.scheduled_id,
            platforms=[account.platform for account in request.accounts],
        )
        return result

    async def list_profiles(self) -> list[SchedulingProfile]:
        """List the accounts connected to the scheduling service."""
        async with self._client() as client:
            try:
                response = await client.get("/profiles")
            except httpx.HTTPError as e:
                raise SchedulingFailed(f"Scheduling service unreachable: {e}") from e

        if response.is_error:
            raise SchedulingFailed(
                error_message(response),
                details={"upstream_status": response.status_code},
            )
        return normalize_profiles(response.json())
