"""Cloud advisory client.

The advisory service turns an engine output into a human explanation and an
optional coach override. The engine never waits on it: the store fires it
in the background and merges whatever comes back, if it is still current.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

import httpx

_logger = logging.getLogger(__name__)


class AdvisoryError(RuntimeError):
    """The advisory service failed, timed out, or answered nonsense."""


@dataclass(slots=True, frozen=True)
class AdvisoryRequest:
    generation: int
    readiness: int
    risk_signals: tuple[Mapping[str, Any], ...] = ()
    active_command: Mapping[str, Any] | None = None
    user_profile: Mapping[str, Any] = field(default_factory=dict)
    override_use_llm: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {
            "generation": self.generation,
            "readiness": self.readiness,
            "risk_signals": [dict(s) for s in self.risk_signals],
            "active_command": dict(self.active_command) if self.active_command else None,
            "user_profile": dict(self.user_profile),
            "forced": self.override_use_llm,
        }


@dataclass(slots=True, frozen=True)
class AdvisoryResult:
    human_explanation: str
    coach_override: Mapping[str, Any] | None = None
    provider: str = "cloud"

    def to_dict(self) -> dict[str, Any]:
        return {
            "human_explanation": self.human_explanation,
            "coach_override": dict(self.coach_override) if self.coach_override else None,
            "provider": self.provider,
        }


class AdvisoryClient(Protocol):
    async def advise(self, request: AdvisoryRequest) -> AdvisoryResult | None:
        ...


@dataclass
class AdvisoryClientConfig:
    url: str
    timeout: float = 8.0
    api_key: str | None = None


class HttpAdvisoryClient:
    """POSTs the request as JSON and parses the synthesis."""

    def __init__(
        self,
        config: AdvisoryClientConfig,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._owns_client = client is None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def advise(self, request: AdvisoryRequest) -> AdvisoryResult | None:
        headers = {"Content-Type": "application/json"}
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"
        try:
            response = await self._http().post(
                self._config.url,
                headers=headers,
                json=request.to_payload(),
                timeout=self._config.timeout,
            )
        except httpx.TimeoutException as exc:
            raise AdvisoryError("advisory service timeout") from exc
        except httpx.HTTPError as exc:
            raise AdvisoryError(f"advisory transport error: {exc}") from exc

        if response.status_code == 429:
            raise AdvisoryError("advisory service rate limited")
        if response.status_code != 200:
            _logger.error(
                "Advisory API error: %s - %s", response.status_code, response.text[:500]
            )
            raise AdvisoryError(f"advisory service error {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise AdvisoryError("advisory response is not JSON") from exc
        if not isinstance(data, dict):
            raise AdvisoryError(
                f"advisory response must be an object, got {type(data).__name__}"
            )

        text = str(data.get("human_explanation") or "").strip()
        if not text:
            return None
        override = data.get("coach_override")
        return AdvisoryResult(
            human_explanation=text,
            coach_override=override if isinstance(override, dict) else None,
            provider=str(data.get("provider") or "cloud"),
        )


__all__ = [
    "AdvisoryClient",
    "AdvisoryClientConfig",
    "AdvisoryError",
    "AdvisoryRequest",
    "AdvisoryResult",
    "HttpAdvisoryClient",
]
