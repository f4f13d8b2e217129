"""Nearby places query.

Endpoint:
  - GET https://<endpoint>/placesedgequery?latitude=..&longitude=..&limit=..&library=..

The response carries two arrays under ``places``: ``userWithin`` (POIs
containing the device) and ``pois`` (other nearby POIs). Each entry is
``{"p": [id, name, lat, lon, radius, library, weight], "x": {metadata}}``.
Malformed entries are dropped one by one; only a malformed document as a
whole fails the query.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from pyplaces._constants import (
    DEFAULT_POI_NAME,
    DEFAULT_POI_RADIUS,
    DEFAULT_POI_WEIGHT,
    PLACES_EDGE_PATH,
    POI_DETAIL_LENGTH,
    RESPONSE_NEARBY_POIS,
    RESPONSE_PLACES,
    RESPONSE_POI_DETAILS,
    RESPONSE_POI_METADATA,
    RESPONSE_USER_WITHIN_POIS,
)
from pyplaces._redact import redact_for_log, redact_url
from pyplaces._transport import Transport
from pyplaces.config import PlacesConfig
from pyplaces.exceptions import (
    PlacesConfigError,
    PlacesConnectivityError,
    PlacesError,
    PlacesInvalidLocationError,
    PlacesServerResponseError,
)
from pyplaces.ingestion.normalize import is_valid_lat, is_valid_lon, safe_float, safe_int, safe_str, scalar_to_str
from pyplaces.models.poi import PointOfInterest
from pyplaces.models.query import NearbyQueryResponse, RequestStatus

_logger = logging.getLogger(__name__)

_INDEX_IDENTIFIER = 0
_INDEX_NAME = 1
_INDEX_LATITUDE = 2
_INDEX_LONGITUDE = 3
_INDEX_RADIUS = 4
_INDEX_LIBRARY = 5
_INDEX_WEIGHT = 6


def build_query_url(
    config: PlacesConfig,
    latitude: Any,
    longitude: Any,
    count: int | None = None,
) -> str:
    """Build the nearby-query URL.

    Raises
    ------
    PlacesInvalidLocationError
        If latitude or longitude is missing, not numeric or out of range.
    """
    lat = safe_float(latitude)
    lon = safe_float(longitude)
    if not (is_valid_lat(lat) and is_valid_lon(lon)):
        raise PlacesInvalidLocationError(f"Invalid latitude/longitude: {latitude!r}, {longitude!r}")

    limit = safe_int(count)
    if limit is None:
        limit = config.default_count

    endpoint = config.endpoint.rstrip("/")
    if "://" not in endpoint:
        endpoint = f"https://{endpoint}"

    return f"{endpoint}/{PLACES_EDGE_PATH}?latitude={lat}&longitude={lon}&limit={limit}{config.libraries_query()}"


def parse_poi_entry(entry: Any, *, contains_device: bool) -> PointOfInterest | None:
    """Parse one response entry, returning ``None`` when it is unusable."""
    if not isinstance(entry, Mapping):
        _logger.warning("Ignoring POI entry, expected an object: %r", redact_for_log(entry))
        return None

    details = entry.get(RESPONSE_POI_DETAILS)
    if not isinstance(details, list) or len(details) != POI_DETAIL_LENGTH:
        _logger.warning("Ignoring POI entry, details do not have the expected format")
        return None

    identifier = safe_str(details[_INDEX_IDENTIFIER])
    if identifier is None:
        _logger.warning("Ignoring POI entry, invalid identifier")
        return None

    latitude = safe_float(details[_INDEX_LATITUDE])
    longitude = safe_float(details[_INDEX_LONGITUDE])
    if not (is_valid_lat(latitude) and is_valid_lon(longitude)):
        _logger.warning("Ignoring POI with identifier %s, invalid latitude/longitude", identifier)
        return None

    radius = safe_int(details[_INDEX_RADIUS])
    if radius is None or radius < 0:
        radius = DEFAULT_POI_RADIUS
    weight = safe_int(details[_INDEX_WEIGHT])
    if weight is None:
        weight = DEFAULT_POI_WEIGHT

    name = details[_INDEX_NAME]
    metadata = entry.get(RESPONSE_POI_METADATA)

    try:
        return PointOfInterest(
            identifier=identifier,
            name=DEFAULT_POI_NAME if name is None else scalar_to_str(name),
            latitude=latitude,
            longitude=longitude,
            radius=radius,
            library=safe_str(details[_INDEX_LIBRARY]) or "",
            weight=weight,
            metadata=metadata if isinstance(metadata, Mapping) else None,
            contains_device=contains_device,
        )
    except ValidationError as exc:
        _logger.warning("Ignoring POI with identifier %s: %s", identifier, exc)
        return None


def _parse_poi_list(places: Mapping[str, Any], key: str, *, contains_device: bool) -> list[PointOfInterest]:
    entries = places.get(key)
    if not isinstance(entries, list):
        return []
    pois: list[PointOfInterest] = []
    for entry in entries:
        poi = parse_poi_entry(entry, contains_device=contains_device)
        if poi is not None:
            pois.append(poi)
    return pois


def parse_places_document(document: Any) -> tuple[list[PointOfInterest], list[PointOfInterest]]:
    """Split a decoded response into ``(inside_pois, nearby_pois)``.

    Raises
    ------
    PlacesServerResponseError
        If the document has no ``places`` object.
    """
    if not isinstance(document, Mapping):
        raise PlacesServerResponseError("Nearby places response is not a JSON object")
    places = document.get(RESPONSE_PLACES)
    if not isinstance(places, Mapping):
        raise PlacesServerResponseError(f"Nearby places response is missing '{RESPONSE_PLACES}'")

    inside = _parse_poi_list(places, RESPONSE_USER_WITHIN_POIS, contains_device=True)
    nearby = _parse_poi_list(places, RESPONSE_NEARBY_POIS, contains_device=False)
    return inside, nearby


def parse_query_response(body: str | None) -> NearbyQueryResponse:
    """Decode a raw response body into a successful :class:`NearbyQueryResponse`.

    Raises
    ------
    PlacesServerResponseError
        If the body is empty, not JSON, or lacks the ``places`` object.
    """
    if body is None or not body.strip():
        raise PlacesServerResponseError("Unable to get nearby places, server response is empty")

    try:
        document = json.loads(body)
    except json.JSONDecodeError as exc:
        raise PlacesServerResponseError(f"Nearby places response is not JSON: {body[:64]}") from exc

    _logger.debug("Nearby places response: %s", redact_for_log(document))

    inside, nearby = parse_places_document(document)
    return NearbyQueryResponse(status=RequestStatus.OK, inside_pois=inside, nearby_pois=nearby)


async def _query(
    config: PlacesConfig,
    transport: Transport | None,
    latitude: Any,
    longitude: Any,
    count: int | None,
) -> NearbyQueryResponse:
    if transport is None:
        raise PlacesConnectivityError("Networking services not available")

    url = build_query_url(config, latitude, longitude, count)
    _logger.debug("Getting nearby places: %s", redact_url(url))

    response = await transport.get(url, timeout=config.network_timeout)
    if response is None:
        raise PlacesConnectivityError("Unable to get nearby places, connection is null", url=url)
    if not response.ok:
        raise PlacesServerResponseError(
            f"Unable to get nearby places, connection failed with status {response.status}, "
            f"message {response.reason}",
            status_code=response.status,
            url=url,
        )
    return parse_query_response(response.body)


def _classify(exc: PlacesError) -> RequestStatus:
    if isinstance(exc, PlacesConnectivityError):
        return RequestStatus.CONNECTIVITY_ERROR
    if isinstance(exc, PlacesServerResponseError):
        return RequestStatus.SERVER_RESPONSE_ERROR
    if isinstance(exc, PlacesInvalidLocationError):
        return RequestStatus.INVALID_LATLONG_ERROR
    if isinstance(exc, PlacesConfigError):
        return RequestStatus.CONFIGURATION_ERROR
    return RequestStatus.UNKNOWN_ERROR


async def fetch_nearby_places(
    config: PlacesConfig,
    transport: Transport | None,
    latitude: Any,
    longitude: Any,
    *,
    count: int | None = None,
) -> NearbyQueryResponse:
    """Query nearby POIs around a location.

    Parameters
    ----------
    config : PlacesConfig
        Endpoint, libraries and timeouts.
    transport : Transport or None
        HTTP transport. ``None`` means no network capability.
    latitude, longitude
        Query location in degrees.
    count : int or None
        Maximum number of POIs; defaults to ``config.default_count``.

    Returns
    -------
    NearbyQueryResponse
        Never raises for query failures; failures are reported through
        ``status`` and ``message`` with empty POI lists.
    """
    try:
        return await _query(config, transport, latitude, longitude, count)
    except PlacesError as exc:
        status = _classify(exc)
        _logger.debug("Nearby places query failed (%s): %s", status.name, exc)
        return NearbyQueryResponse.failed(status, str(exc))
