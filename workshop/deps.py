from functools import lru_cache

import httpx
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from workshop import settings
from workshop.errors import UnavailableError
from workshop.schemas import AdvisorSnapshot, BaySnapshot


def _bay_display_name(data: dict) -> str:
    """
    Bay directory payloads carry a nested bay name plus a bay number, e.g.
    {"name": {"id": 1, "name": "Paint"}, "number": "05"} → "Paint 05".
    """
    name = data.get("name")
    if isinstance(name, dict):
        name = name.get("name")
    number = data.get("number")
    parts = [str(p) for p in (name, number) if p]
    return " ".join(parts) or f"Bay {data['id']}"


async def _fetch(client: httpx.AsyncClient, service: str, path: str) -> dict | None:
    """GET a directory resource. Returns None on 404, raises UnavailableError otherwise."""
    try:
        resp = await client.get(path)
    except httpx.TimeoutException as exc:
        logger.warning("{} timed out on GET {}", service, path)
        raise UnavailableError(service, "timed out") from exc
    except httpx.RequestError as exc:
        logger.warning("{} request failed on GET {}: {}", service, path, exc)
        raise UnavailableError(service, str(exc)) from exc

    if resp.status_code == 404:
        return None
    if resp.status_code >= 400:
        raise UnavailableError(service, f"returned {resp.status_code}")
    try:
        body = resp.json()
    except ValueError as exc:
        raise UnavailableError(service, "returned a malformed body") from exc
    if not isinstance(body, dict):
        raise UnavailableError(service, "returned a malformed body")
    return body


# ---------------------------------------------------------------------------
# BayDirectoryClient — read-only lookups against the bay directory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def _get_bays_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.bays_directory_url,
        timeout=httpx.Timeout(settings.directory_timeout),
        follow_redirects=True,
    )


class BayDirectoryClient:
    """Thin async wrapper around the bay directory API."""

    service_name = "bay directory"

    @property
    def _client(self) -> httpx.AsyncClient:
        return _get_bays_http_client()

    async def resolve_bay(self, bay_id: int) -> BaySnapshot | None:
        data = await _fetch(self._client, self.service_name, f"/bays/{bay_id}")
        if data is None:
            return None
        try:
            return BaySnapshot(
                id=data["id"],
                display_name=_bay_display_name(data),
                status=data.get("status"),
            )
        except (KeyError, TypeError, AttributeError, PydanticValidationError) as exc:
            raise UnavailableError(self.service_name, "returned a malformed body") from exc


_bays_client = BayDirectoryClient()


def get_bays_client() -> BayDirectoryClient:
    return _bays_client


# ---------------------------------------------------------------------------
# AdvisorDirectoryClient — read-only lookups against the service advisor directory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def _get_advisors_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.advisors_directory_url,
        timeout=httpx.Timeout(settings.directory_timeout),
        follow_redirects=True,
    )


class AdvisorDirectoryClient:
    """Thin async wrapper around the service advisor directory API."""

    service_name = "service advisor directory"

    @property
    def _client(self) -> httpx.AsyncClient:
        return _get_advisors_http_client()

    async def resolve_advisor(self, advisor_id: int) -> AdvisorSnapshot | None:
        data = await _fetch(
            self._client, self.service_name, f"/service-advisors/{advisor_id}"
        )
        if data is None:
            return None
        try:
            return AdvisorSnapshot(
                id=data["id"], name=data["name"], status=data.get("status")
            )
        except (KeyError, TypeError, AttributeError, PydanticValidationError) as exc:
            raise UnavailableError(self.service_name, "returned a malformed body") from exc


_advisors_client = AdvisorDirectoryClient()


def get_advisors_client() -> AdvisorDirectoryClient:
    return _advisors_client
