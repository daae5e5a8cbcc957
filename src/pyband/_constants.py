"""Internal constants shared across the library."""

#: Prefix the band firmware subscribes under; the shadow key is this
#: prefix followed by the device serial number.
SHADOW_KEY_PREFIX = "smartband_"

#: Desired-state flag asking the band to publish a fresh report.
DATA_REQUEST_FIELD = "data_requested"

DEFAULT_QUIESCENCE_WINDOW: float = 3.0
DEFAULT_OPERATION_MARGIN: float = 7.0
DEFAULT_HTTP_TIMEOUT: float = 10.0

USER_AGENT = "pyband/1"
