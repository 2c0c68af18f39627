"""GitHub ``repository_dispatch`` delivery of Notification Records.

Delivery is a single POST; there is no retry. Any failure surfaces as a
:class:`~lookout.errors.DispatchError` or
:class:`~lookout.errors.DispatchConfigError` for the caller to report.
"""

from __future__ import annotations

import dataclasses
import os
import typing as typ

import httpx
import msgspec

from .config import REPOSITORY_PATTERN, TOKEN_ENV_VAR
from .errors import DispatchConfigError, DispatchError

if typ.TYPE_CHECKING:
    from .config import DispatchSettings
    from .record import NotificationRecord

_GITHUB_API_VERSION = "2022-11-28"


@dataclasses.dataclass(frozen=True, slots=True)
class DispatchConfig:
    """Resolved target and credential for one delivery."""

    token: str = dataclasses.field(repr=False)
    repository: str
    event_type: str
    api_url: str = "https://api.github.com"
    timeout_s: float = 20.0
    user_agent: str = "lookout/0.1"

    @property
    def endpoint(self) -> str:
        """Return the dispatches URL for the target repository."""
        return f"{self.api_url.rstrip('/')}/repos/{self.repository}/dispatches"

    @classmethod
    def from_settings(
        cls,
        settings: DispatchSettings,
        environ: typ.Mapping[str, str] | None = None,
    ) -> DispatchConfig:
        """Combine configured settings with the ``LOOKOUT_DISPATCH_TOKEN`` secret."""
        env = os.environ if environ is None else environ
        token = env.get(TOKEN_ENV_VAR, "").strip()
        if not token:
            raise DispatchConfigError.missing_token()
        if not settings.repository:
            raise DispatchConfigError.missing_repository()
        if not REPOSITORY_PATTERN.match(settings.repository):
            raise DispatchConfigError.malformed_repository(settings.repository)
        return cls(
            token=token,
            repository=settings.repository,
            event_type=settings.event_type,
            api_url=settings.api_url,
            timeout_s=settings.timeout_s,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class DispatchReceipt:
    """Confirmation of an accepted dispatch."""

    repository: str
    event_type: str
    status_code: int


class Dispatcher(typ.Protocol):
    """Anything able to deliver a record downstream."""

    async def dispatch(self, record: NotificationRecord) -> DispatchReceipt:
        """Deliver ``record`` once."""
        ...

    async def aclose(self) -> None:
        """Release transport resources."""
        ...


def encode_dispatch_body(event_type: str, record: NotificationRecord) -> bytes:
    """Serialise the request body GitHub expects for ``repository_dispatch``."""
    return msgspec.json.encode({"event_type": event_type, "client_payload": record})


class RepositoryDispatcher:
    """Deliver records to a downstream repository via the GitHub REST API."""

    def __init__(
        self,
        config: DispatchConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the dispatcher with a resolved target and credential."""
        if not config.token.strip():
            raise DispatchConfigError.missing_token()

        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_s)
        self._headers = {
            "Authorization": f"Bearer {config.token}",
            "User-Agent": config.user_agent,
            "Accept": "application/vnd.github+json",
            "Content-Type": "application/json",
            "X-GitHub-Api-Version": _GITHUB_API_VERSION,
        }

    @property
    def config(self) -> DispatchConfig:
        """Return the delivery target configuration."""
        return self._config

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def dispatch(self, record: NotificationRecord) -> DispatchReceipt:
        """POST ``record`` as a ``repository_dispatch`` event.

        Raises
        ------
        DispatchError
            If the request cannot be sent or GitHub answers with anything
            other than a 2xx status, including redirects for a moved target.

        """
        try:
            response = await self._client.post(
                self._config.endpoint,
                content=encode_dispatch_body(self._config.event_type, record),
                headers=self._headers,
            )
        except httpx.TransportError as exc:
            raise DispatchError.transport(exc) from exc

        if not response.is_success:
            raise DispatchError.http_error(
                response.status_code, _error_detail(response)
            )

        return DispatchReceipt(
            repository=self._config.repository,
            event_type=self._config.event_type,
            status_code=response.status_code,
        )


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return ""
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str):
            return message
    return ""
