"""
Peplink InControl 2 API client.

This package provides:
- InControl REST API client (token exchange, organizations, devices)
- Settings loading from YAML or environment variables
- Local JSON/CSV export of API results
- A small command line front end
"""

from .ic_client import DEFAULT_BASE_URL, DEFAULT_TOKEN_URL, InControlClient, InControlError
from .models import DeviceListMode, ErrorKind

__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_TOKEN_URL",
    "DeviceListMode",
    "ErrorKind",
    "InControlClient",
    "InControlError",
]
