from enum import Enum
from typing import Any, Dict, List, Union


class DeviceListMode(str, Enum):
    """Response shape requested from the device listing endpoints.

    - BASIC: short device records (`/o/{org}/d/basic`)
    - FULL: complete device records (`/o/{org}/d`)
    - CSV: raw CSV export (`/o/{org}/d/csv`), returned unparsed
    """

    BASIC = "basic"
    FULL = "full"
    CSV = "csv"


class ErrorKind(str, Enum):
    """Failure categories reported by InControlError."""

    INVALID_ARGUMENT = "invalid_argument"
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    INVALID_RESPONSE = "invalid_response"


# Records are passed through exactly as the API returns them.
Token = Dict[str, Any]
Organization = Dict[str, Any]
Device = Dict[str, Any]
DeviceListing = Union[List[Device], str]
