import logging
import time
from typing import Any, Dict, Optional, Union
from urllib.parse import quote

import requests
import urllib3

from .models import (
    Device,
    DeviceListing,
    DeviceListMode,
    ErrorKind,
    Organization,
    Token,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.ic.peplink.com/rest"
DEFAULT_TOKEN_URL = "https://api.ic.peplink.com/api/oauth2/token"

_DEVICE_LIST_PATHS = {
    DeviceListMode.BASIC: "/o/{org_id}/d/basic",
    DeviceListMode.FULL: "/o/{org_id}/d",
    DeviceListMode.CSV: "/o/{org_id}/d/csv",
}

# The CSV export endpoint expects a differently cased organization parameter.
_ORG_PARAM_NAMES = {
    DeviceListMode.BASIC: "organization_id",
    DeviceListMode.FULL: "organization_id",
    DeviceListMode.CSV: "organization_ID",
}


class InControlError(Exception):
    """Raised when an InControl API call cannot produce a result.

    Attributes:
        kind: ErrorKind describing the failure category.
        message: Human readable description (never contains credentials).
        cause: The underlying exception, if any.
        status_code: HTTP status for ErrorKind.HTTP_STATUS failures.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause
        self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class InControlClient:
    """Thin wrapper around the Peplink InControl 2 REST API.

    Every operation performs a single HTTP round trip and hands back the
    response body as the API shaped it. Failures are logged and raised as
    InControlError.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token_url: str = DEFAULT_TOKEN_URL,
        timeout: float = 30,
        max_retries: int = 1,
        verify_ssl: bool = True,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_url = token_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, int(max_retries))
        self.verify_ssl = verify_ssl

        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})

        if not verify_ssl:
            # disable insecure HTTPS warnings (self-signed certs, lab proxies)
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        self.logger = logging.getLogger(__name__)

    def __enter__(self) -> "InControlClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def _error(
        self,
        kind: ErrorKind,
        message: str,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None,
    ) -> InControlError:
        self.logger.error("Error: %s", message)
        return InControlError(kind, message, cause=cause, status_code=status_code)

    def _require(self, name: str, value: object) -> str:
        if not isinstance(value, str) or not value.strip():
            raise self._error(ErrorKind.INVALID_ARGUMENT, f"{name} must be a non-empty string")
        return value

    def _coerce_mode(self, mode: Union[DeviceListMode, str]) -> DeviceListMode:
        try:
            return DeviceListMode(mode)
        except (ValueError, TypeError) as exc:
            allowed = ", ".join(m.value for m in DeviceListMode)
            raise self._error(
                ErrorKind.INVALID_ARGUMENT,
                f"Unsupported device list mode {mode!r} (expected one of: {allowed})",
                exc,
            ) from exc

    def _send(
        self,
        method: str,
        url: str,
        params: Dict[str, str],
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        """Issue a request, retrying timeouts and connection errors up to max_retries attempts."""
        attempts = max(1, self.max_retries)
        attempt = 0
        while True:
            try:
                resp = self.session.request(
                    method,
                    url,
                    params=params,
                    headers=headers,
                    verify=self.verify_ssl,
                    timeout=self.timeout,
                )
                resp.raise_for_status()
                return resp

            except requests.HTTPError as exc:
                status = exc.response.status_code if exc.response is not None else None
                raise self._error(
                    ErrorKind.HTTP_STATUS,
                    f"{method} {url} returned HTTP {status}",
                    exc,
                    status_code=status,
                ) from exc
            except (requests.Timeout, requests.ConnectionError) as exc:
                kind = ErrorKind.TIMEOUT if isinstance(exc, requests.Timeout) else ErrorKind.TRANSPORT
                attempt += 1
                if attempt < attempts:
                    wait_time = 2 ** (attempt - 1)
                    self.logger.warning(
                        "%s for %s %s (attempt %s/%s), retrying in %ss...",
                        type(exc).__name__,
                        method,
                        url,
                        attempt,
                        attempts,
                        wait_time,
                    )
                    time.sleep(wait_time)
                    continue
                raise self._error(
                    kind,
                    f"{method} {url} failed after {attempts} attempt(s): {type(exc).__name__}",
                    exc,
                ) from exc
            except requests.RequestException as exc:
                raise self._error(
                    ErrorKind.TRANSPORT,
                    f"{method} {url} failed: {type(exc).__name__}",
                    exc,
                ) from exc

    def _json(self, resp: requests.Response, url: str) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise self._error(ErrorKind.INVALID_RESPONSE, f"Response from {url} is not valid JSON", exc) from exc

    def _get_data(self, endpoint: str, params: Dict[str, str]) -> Any:
        """GET an endpoint under base_url and unwrap the `data` field."""
        url = f"{self.base_url}{endpoint}"
        payload = self._json(self._send("GET", url, params), url)
        if not isinstance(payload, dict) or "data" not in payload:
            raise self._error(ErrorKind.INVALID_RESPONSE, f"Response from {url} has no 'data' field")
        return payload["data"]

    def request_token(self, client_id: str, client_secret: str) -> Token:
        """Exchange client credentials for an access token (client-credentials grant).

        The parsed JSON body is returned untouched, typically carrying
        `access_token`, `refresh_token` and `expires_in`.
        """
        self._require("client_id", client_id)
        self._require("client_secret", client_secret)

        self.logger.info("Requesting access token from %s", self.token_url)
        resp = self._send(
            "POST",
            self.token_url,
            params={
                "client_id": client_id,
                "client_secret": client_secret,
                "grant_type": "client_credentials",
            },
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "application/json",
            },
        )
        return self._json(resp, self.token_url)

    def list_organizations(self, token: str) -> list[Organization]:
        """Return the organizations visible to the token, in server order."""
        self._require("token", token)
        self.logger.info("Fetching organizations")
        return self._get_data("/o", params={"access_token": token})

    def list_devices(
        self,
        token: str,
        org_id: str,
        mode: Union[DeviceListMode, str] = DeviceListMode.BASIC,
    ) -> DeviceListing:
        """List the devices of an organization.

        BASIC and FULL return the `data` list; CSV returns the body text unparsed.
        """
        self._require("token", token)
        self._require("org_id", org_id)
        list_mode = self._coerce_mode(mode)

        endpoint = _DEVICE_LIST_PATHS[list_mode].format(org_id=quote(org_id, safe=""))
        params = {
            _ORG_PARAM_NAMES[list_mode]: org_id,
            "access_token": token,
        }

        self.logger.info("Fetching %s device list for organization %s", list_mode.value, org_id)
        if list_mode is DeviceListMode.CSV:
            return self._send("GET", f"{self.base_url}{endpoint}", params).text
        return self._get_data(endpoint, params)

    def get_device(self, token: str, org_id: str, device_id: str) -> Device:
        """Fetch a single device record."""
        self._require("token", token)
        self._require("org_id", org_id)
        self._require("device_id", device_id)

        endpoint = f"/o/{quote(org_id, safe='')}/d/{quote(device_id, safe='')}"
        self.logger.info("Fetching device %s in organization %s", device_id, org_id)
        return self._get_data(endpoint, params={"access_token": token})
