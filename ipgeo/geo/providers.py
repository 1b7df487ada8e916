"""Upstream geolocation providers and the fallback chain that queries them."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

import requests

from ipgeo.errors import ProviderError
from ipgeo.geo.detector import is_resolvable_ip
from ipgeo.geo.normalizer import normalize, parse_response
from ipgeo.models.location import LocationData

logger = logging.getLogger(__name__)

FetchJSON = Callable[["Provider", str], Awaitable[Any]]


@dataclass(frozen=True)
class Provider:
    """One upstream service, keyed by the response shape it returns."""

    service: str
    tag: str
    url_template: str

    def url_for(self, ip: str) -> str:
        return self.url_template.format(ip=ip)


IPAPI_CO = Provider(
    service="ipapi.co",
    tag="ipapi_co",
    url_template="https://ipapi.co/{ip}/json/",
)
IP_API_COM = Provider(
    service="ip-api.com",
    tag="ip_api_com",
    url_template=(
        "http://ip-api.com/json/{ip}"
        "?fields=status,message,country,countryCode,region,regionName,city,timezone,lat,lon"
    ),
)
IPINFO_IO = Provider(
    service="ipinfo.io",
    tag="ipinfo_io",
    url_template="https://ipinfo.io/{ip}/json",
)

# Most accurate and rate-generous first
DEFAULT_PROVIDERS: tuple[Provider, ...] = (IPAPI_CO, IP_API_COM, IPINFO_IO)


def default_providers(ipinfo_token: str = "") -> tuple[Provider, ...]:
    """The standard chain, with the ipinfo token appended when one is configured."""
    if not ipinfo_token:
        return DEFAULT_PROVIDERS
    ipinfo = Provider(
        service=IPINFO_IO.service,
        tag=IPINFO_IO.tag,
        url_template=IPINFO_IO.url_template + "?token=" + ipinfo_token,
    )
    return (IPAPI_CO, IP_API_COM, ipinfo)


def new_http_session(user_agent: str) -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": user_agent, "Accept": "application/json"})
    return session


def make_requests_fetcher(session: requests.Session, timeout: float = 5.0) -> FetchJSON:
    """Build a fetcher that runs blocking ``requests`` calls off the event loop.

    Any transport problem surfaces as ``ProviderError``.
    """

    def _get(provider: Provider, ip: str) -> Any:
        try:
            resp = session.get(provider.url_for(ip), timeout=timeout)
            resp.raise_for_status()
            return resp.json()
        except requests.exceptions.JSONDecodeError as e:
            raise ProviderError(provider.service, "malformed JSON") from e
        except requests.RequestException as e:
            raise ProviderError(provider.service, str(e)) from e

    async def fetch_json(provider: Provider, ip: str) -> Any:
        return await asyncio.to_thread(_get, provider, ip)

    return fetch_json


class ProviderChainResolver:
    """Try each provider in order and return the first usable location.

    Exhausting the chain returns ``None``; provider errors never reach the
    caller. Caching is left to the caller.
    """

    def __init__(self, fetch_json: FetchJSON, providers: Sequence[Provider] = DEFAULT_PROVIDERS):
        if not providers:
            raise ValueError("at least one provider is required")
        self.fetch_json = fetch_json
        self.providers = tuple(providers)

    async def _try_provider(self, provider: Provider, ip: str) -> LocationData | None:
        try:
            raw = await self.fetch_json(provider, ip)
            payload = parse_response(provider.tag, raw, provider.service)
            return normalize(payload, provider.service)
        except ProviderError as e:
            logger.warning("Geolocation provider failed ip=%s provider=%s reason=%s", ip, e.provider, e.reason)
        except Exception as e:
            logger.warning("Geolocation provider failed ip=%s provider=%s reason=%r", ip, provider.service, e)
        return None

    async def resolve(self, ip: str) -> LocationData | None:
        if not is_resolvable_ip(ip):
            return None
        for provider in self.providers:
            location = await self._try_provider(provider, ip)
            if location is not None:
                logger.debug("Resolved ip=%s via %s", ip, provider.service)
                return location.model_copy(update={"ip": ip})
            logger.debug("No usable data for ip=%s from %s", ip, provider.service)
        logger.info("All geolocation providers exhausted for ip=%s", ip)
        return None
