"""
HTTP client for a remote airspace store.

The remote service answers bbox + time window queries with GeoJSON
FeatureCollections (zones, notams) and an observation list (weather).
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, Optional, TypeVar

import httpx
from pydantic import ValidationError

from ..exceptions import UpstreamUnavailable
from ..models.airspace import Notice, WeatherObservation, Zone
from ..storage.base import AirspaceSession, AirspaceStore
from ..utils.geometry import BoundingBox

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AirspaceApiStore(AirspaceStore):
    """
    Airspace store backed by a remote HTTP API.

    Each session opens its own HTTP client and closes it on exit, so no
    connection state is shared between flight decisions.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator["AirspaceApiSession"]:
        client = self._new_client()
        try:
            yield AirspaceApiSession(client)
        finally:
            await client.aclose()

    async def test_connection(self) -> bool:
        """Test API connectivity."""
        async with self._new_client() as client:
            try:
                response = await client.get("/")
                return response.is_success
            except httpx.HTTPError:
                return False


class AirspaceApiSession(AirspaceSession):
    """Queries against the remote store over one HTTP client."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def _get_json(self, path: str, bbox: BoundingBox, start: datetime, end: datetime):
        params = {
            "bbox": bbox.to_param(),
            "start": start.isoformat(),
            "end": end.isoformat(),
        }
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Request failed: {e}", source=path) from e

        if not response.is_success:
            raise UpstreamUnavailable(
                f"Upstream returned {response.status_code} {response.reason_phrase}",
                source=path,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailable("Upstream returned invalid JSON", source=path) from e

    @staticmethod
    def _parse_rows(rows, parse: Callable[[dict], T], kind: str) -> list[T]:
        """Parse records one by one; a bad record is skipped, not fatal."""
        records = []
        for row in rows:
            try:
                records.append(parse(row))
            except (ValidationError, AttributeError, TypeError) as e:
                logger.warning(f"Skipping malformed {kind} record: {e}")
        return records

    async def _features(self, path: str, bbox: BoundingBox, start: datetime, end: datetime) -> list:
        data = await self._get_json(path, bbox, start, end)
        features = data.get("features") if isinstance(data, dict) else None
        if not isinstance(features, list):
            raise UpstreamUnavailable("Expected a FeatureCollection", source=path)
        return features

    async def fetch_zones(self, bbox: BoundingBox, start: datetime, end: datetime) -> list[Zone]:
        features = await self._features("/v1/zones", bbox, start, end)
        return self._parse_rows(features, Zone.from_feature, "zone")

    async def fetch_notices(self, bbox: BoundingBox, start: datetime, end: datetime) -> list[Notice]:
        features = await self._features("/v1/notams", bbox, start, end)
        # The store already filtered on the window; an undated notice is active in it
        return self._parse_rows(
            features, lambda f: Notice.from_feature(f, default_start=start), "notam"
        )

    async def fetch_weather(
        self, bbox: BoundingBox, start: datetime, end: datetime
    ) -> list[WeatherObservation]:
        path = "/v1/weather"
        data = await self._get_json(path, bbox, start, end)
        rows = data.get("observations") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            raise UpstreamUnavailable("Expected an observations list", source=path)
        return self._parse_rows(
            rows, lambda r: WeatherObservation.from_row(r, default_observed_at=start), "weather"
        )
