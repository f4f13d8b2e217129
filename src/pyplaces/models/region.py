"""Region transition models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from pyplaces._constants import (
    REGION_EVENT_TYPE,
    REGION_TIMESTAMP,
    REGION_TRIGGERING_REGION,
    XDM,
    XDM_CATEGORY,
    XDM_CIRCLE,
    XDM_COLLECT,
    XDM_COORDINATES,
    XDM_DATASET_ID,
    XDM_EVENT_TYPE,
    XDM_EVENT_TYPE_ENTRY,
    XDM_EVENT_TYPE_EXIT,
    XDM_GEO_INTERACTION_DETAILS,
    XDM_ID,
    XDM_KEY,
    XDM_LATITUDE,
    XDM_LIST,
    XDM_LONGITUDE,
    XDM_META,
    XDM_METADATA,
    XDM_NAME,
    XDM_PLACE_CONTEXT,
    XDM_POI_DETAIL,
    XDM_POI_ENTRIES,
    XDM_POI_EXITS,
    XDM_POI_ID,
    XDM_POI_INTERACTION,
    XDM_RADIUS,
    XDM_SCHEMA,
    XDM_VALUE,
)
from pyplaces.models._base import PlacesEnum
from pyplaces.models.poi import PointOfInterest


class RegionEventType(PlacesEnum):
    """Kind of boundary crossing. ``NONE`` marks an unusable value."""

    NONE = "none"
    ENTRY = "entry"
    EXIT = "exit"


class RegionTransition(BaseModel):
    """An entry or exit the membership state accepted.

    ``poi`` is a snapshot taken when the transition was processed.
    """

    model_config = ConfigDict(frozen=True)

    poi: PointOfInterest
    kind: RegionEventType
    timestamp: float

    @property
    def experience_event_type(self) -> str:
        return XDM_EVENT_TYPE_ENTRY if self.kind == RegionEventType.ENTRY else XDM_EVENT_TYPE_EXIT

    def to_event_data(self) -> dict[str, Any]:
        return {
            REGION_TRIGGERING_REGION: self.poi.to_map(),
            REGION_EVENT_TYPE: self.kind.value,
            REGION_TIMESTAMP: self.timestamp,
        }

    def to_experience_event(self, dataset_id: str) -> dict[str, Any]:
        """Build the location-tracking experience event for *dataset_id*.

        The POI is reported under ``poiEntries`` or ``poiExits``
        depending on the transition, and a ``category`` metadata value
        is promoted into the POI detail.
        """
        poi = self.poi
        metadata = poi.metadata or {}

        detail: dict[str, Any] = {
            XDM_POI_ID: poi.identifier,
            XDM_NAME: poi.name,
            XDM_GEO_INTERACTION_DETAILS: {
                XDM_SCHEMA: {
                    XDM_CIRCLE: {
                        XDM_SCHEMA: {
                            XDM_RADIUS: poi.radius,
                            XDM_COORDINATES: {
                                XDM_SCHEMA: {XDM_LATITUDE: poi.latitude, XDM_LONGITUDE: poi.longitude},
                            },
                        },
                    },
                },
            },
            XDM_METADATA: {XDM_LIST: [{XDM_KEY: key, XDM_VALUE: value} for key, value in metadata.items()]},
        }
        if XDM_CATEGORY in metadata:
            detail[XDM_CATEGORY] = metadata[XDM_CATEGORY]

        interaction_key = XDM_POI_ENTRIES if self.kind == RegionEventType.ENTRY else XDM_POI_EXITS
        return {
            XDM: {
                XDM_EVENT_TYPE: self.experience_event_type,
                XDM_PLACE_CONTEXT: {
                    XDM_POI_INTERACTION: {
                        XDM_POI_DETAIL: detail,
                        interaction_key: {XDM_ID: poi.identifier, XDM_VALUE: 1},
                    },
                },
            },
            XDM_META: {XDM_COLLECT: {XDM_DATASET_ID: dataset_id}},
        }
