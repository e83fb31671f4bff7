"""
Link token request against the Cuti-E API.

POST {base_url}/v1/feedback-app/generate-token with the device ID and
whichever credentials are configured; the response carries a short-lived
token that the Feedback App accepts in its deep link.
"""

from typing import Dict, Optional
from urllib.parse import urlparse

import requests

from ..config.loader import DEFAULT_TIMEOUT
from ..errors import (
    InvalidCredentialsError,
    InvalidResponseError,
    InvalidURLError,
    ServerError,
)
from ..version import __version__

TOKEN_PATH = "v1/feedback-app/generate-token"
USER_AGENT = f"cutie-link-python/{__version__}"


def normalize_url(base_url: str, path: str) -> str:
    """Normalize URL to prevent double slashes."""
    base = base_url.rstrip('/')
    path = path.lstrip('/')
    return f"{base}/{path}"


def token_url(base_url: str) -> str:
    """Endpoint URL for ``base_url``; raises InvalidURLError if it is not absolute http(s)."""
    try:
        parsed = urlparse(base_url)
    except (TypeError, ValueError, AttributeError) as e:
        raise InvalidURLError() from e
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidURLError(f"Invalid API URL: {base_url!r}")
    return normalize_url(base_url, TOKEN_PATH)


def _check_header_value(name: str, value: str) -> None:
    # http.client sends header values as latin-1
    try:
        value.encode("latin-1")
    except UnicodeEncodeError as e:
        raise InvalidCredentialsError(f"{name} contains characters that cannot be sent in a header") from e


def get_token_headers(device_id: str, app_id: Optional[str] = None, api_key: Optional[str] = None) -> Dict[str, str]:
    """Request headers; raises InvalidCredentialsError for values HTTP cannot carry."""
    _check_header_value("Device ID", device_id)
    if app_id is not None:
        _check_header_value("App ID", app_id)
    if api_key is not None:
        _check_header_value("API key", api_key)

    headers = {
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
        "X-Device-ID": device_id,
    }
    if app_id is not None:
        headers["X-App-ID"] = app_id
    if api_key is not None:
        headers["X-API-Key"] = api_key
    return headers


def parse_token(response: requests.Response) -> str:
    """Extract the ``token`` field from a 200 response body."""
    try:
        data = response.json()
    except ValueError as e:
        raise InvalidResponseError() from e

    token = data.get("token") if isinstance(data, dict) else None
    if not isinstance(token, str) or not token:
        raise InvalidResponseError("Invalid server response: missing token")
    return token


def request_link_token(
    base_url: str,
    device_id: str,
    app_id: Optional[str] = None,
    api_key: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    """Request a fresh link token.

    Tokens are single use; nothing is cached between calls and failures are
    not retried.

    Raises:
        InvalidURLError: ``base_url`` is not a usable http(s) URL.
        InvalidCredentialsError: the API answered 401, or a credential or
            the device ID cannot be sent as a header.
        ServerError: any other non-200 status.
        InvalidResponseError: no HTTP response, or no token in the body.
    """
    url = token_url(base_url)
    headers = get_token_headers(device_id, app_id=app_id, api_key=api_key)
    body = {"device_id": device_id}
    if app_id is not None:
        body["app_id"] = app_id

    try:
        resp = requests.post(url, json=body, headers=headers, timeout=timeout)
    except (requests.exceptions.MissingSchema,
            requests.exceptions.InvalidSchema,
            requests.exceptions.InvalidURL) as e:
        raise InvalidURLError() from e
    except requests.exceptions.RequestException as e:
        raise InvalidResponseError(f"Invalid server response: {e}") from e

    if resp.status_code == 401:
        raise InvalidCredentialsError()
    if resp.status_code != 200:
        raise ServerError(resp.status_code)

    return parse_token(resp)
