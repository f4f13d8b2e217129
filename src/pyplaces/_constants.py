"""Internal constants shared across the library."""

USER_AGENT = "pyplaces/1"

DEFAULT_NETWORK_TIMEOUT: float = 2.0
DEFAULT_NEARBYPOI_COUNT = 20
DEFAULT_MEMBERSHIP_TTL = 60 * 60
INVALID_LAT_LON = 999.999

PLACES_EDGE_PATH = "placesedgequery"

# ------------------------------------------------------------------
# Nearby-query response
# ------------------------------------------------------------------

RESPONSE_PLACES = "places"
RESPONSE_NEARBY_POIS = "pois"
RESPONSE_USER_WITHIN_POIS = "userWithin"
RESPONSE_POI_DETAILS = "p"
RESPONSE_POI_METADATA = "x"

POI_DETAIL_LENGTH = 7
DEFAULT_POI_RADIUS = 100
DEFAULT_POI_WEIGHT = 1000
DEFAULT_POI_NAME = "unnamed"

# ------------------------------------------------------------------
# POI map keys (persistence + shared state)
# ------------------------------------------------------------------

POI_IDENTIFIER = "regionid"
POI_NAME = "regionname"
POI_LATITUDE = "latitude"
POI_LONGITUDE = "longitude"
POI_RADIUS = "radius"
POI_METADATA = "regionmetadata"
POI_USER_IS_WITHIN = "useriswithin"
POI_LIBRARY = "libraryid"
POI_WEIGHT = "weight"

# ------------------------------------------------------------------
# Datastore slots
# ------------------------------------------------------------------

STORE_NEARBY_POIS = "nearbypois"
STORE_CURRENT_POI = "currentpoi"
STORE_LAST_ENTERED_POI = "lastenteredpoi"
STORE_LAST_EXITED_POI = "lastexitedpoi"
STORE_LAST_KNOWN_LATITUDE = "lastknownlatitude"
STORE_LAST_KNOWN_LONGITUDE = "lastknownlongitude"
STORE_AUTH_STATUS = "authstatus"
STORE_MEMBERSHIP_VALID_UNTIL = "places_membership_valid_until"

# ------------------------------------------------------------------
# Shared state
# ------------------------------------------------------------------

STATE_NEARBY_POIS = "nearbypois"
STATE_CURRENT_POI = "currentpoi"
STATE_LAST_ENTERED_POI = "lastenteredpoi"
STATE_LAST_EXITED_POI = "lastexitedpoi"
STATE_AUTH_STATUS = "authstatus"
STATE_VALID_UNTIL = "validuntil"

# ------------------------------------------------------------------
# Region event data
# ------------------------------------------------------------------

REGION_TRIGGERING_REGION = "triggeringregion"
REGION_EVENT_TYPE = "regioneventtype"
REGION_TIMESTAMP = "timestamp"

# ------------------------------------------------------------------
# Remote configuration keys
# ------------------------------------------------------------------

CONFIG_GLOBAL_PRIVACY = "global.privacy"
CONFIG_LIBRARIES = "places.libraries"
CONFIG_LIBRARY_ID = "id"
CONFIG_ENDPOINT = "places.endpoint"
CONFIG_MEMBERSHIP_TTL = "places.membershipttl"
CONFIG_EXPERIENCE_EVENT_DATASET = "messaging.eventDataset"
PRIVACY_OPT_OUT = "optout"

# ------------------------------------------------------------------
# Location tracking experience event
# ------------------------------------------------------------------

XDM_EVENT_TYPE_ENTRY = "location.entry"
XDM_EVENT_TYPE_EXIT = "location.exit"

XDM = "xdm"
XDM_EVENT_TYPE = "eventType"
XDM_META = "meta"
XDM_COLLECT = "collect"
XDM_DATASET_ID = "datasetId"
XDM_PLACE_CONTEXT = "placeContext"
XDM_POI_INTERACTION = "POIinteraction"
XDM_POI_DETAIL = "poiDetail"
XDM_POI_ENTRIES = "poiEntries"
XDM_POI_EXITS = "poiExits"
XDM_GEO_INTERACTION_DETAILS = "geoInteractionDetails"
XDM_SCHEMA = "_schema"
XDM_CIRCLE = "circle"
XDM_COORDINATES = "coordinates"
XDM_POI_ID = "poiID"
XDM_NAME = "name"
XDM_LATITUDE = "latitude"
XDM_LONGITUDE = "longitude"
XDM_RADIUS = "radius"
XDM_CATEGORY = "category"
XDM_METADATA = "metadata"
XDM_LIST = "list"
XDM_KEY = "key"
XDM_VALUE = "value"
XDM_ID = "id"
