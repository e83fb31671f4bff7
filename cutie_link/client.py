"""
LinkClient: opens the Cuti-E Feedback App from a host application.

Usage:
    client = LinkClient()
    client.configure("your-app-id")
    client.open_feedback_app()

or, with the process-wide client:
    import cutie_link
    cutie_link.configure("your-app-id")
    cutie_link.open_feedback_app()

open_feedback_app() requests a link token, then opens
cutie://link?token=<token>. When no handler is registered for cutie://
the App Store page is opened instead and False is returned.
"""

import asyncio
import threading
from typing import Any, Dict, Optional
from urllib.parse import quote

from .auth.device_store import DeviceIdProvider, JsonFileStore, KeyValueStore
from .auth.token import request_link_token
from .config.loader import get_client_settings
from .dispatch import UrlDispatcher, WebBrowserDispatcher
from .errors import (
    FeedbackAppNotInstalledError,
    InvalidDeepLinkError,
    NotConfiguredError,
)
from .settings import LinkConfig

FEEDBACK_APP_URL = "cutie://"
DEEP_LINK_TEMPLATE = "cutie://link?token={token}"


def build_deep_link(token: str) -> str:
    """Embed a link token in the Feedback App deep link."""
    try:
        encoded = quote(token, safe="")
    except (TypeError, UnicodeEncodeError) as e:
        raise InvalidDeepLinkError() from e
    return DEEP_LINK_TEMPLATE.format(token=encoded)


class LinkClient:
    """Configuration, device identity and link dispatch for one host app.

    :param config: credentials and base URL; a fresh LinkConfig if omitted.
    :param store: key-value store for the device ID; the JSON file from
        configuration if omitted.
    :param dispatcher: URL dispatcher; a WebBrowserDispatcher if omitted.
    :param settings: dict as returned by get_client_settings(); loaded from
        config.yaml and the environment if omitted.
    """

    def __init__(
        self,
        config: Optional[LinkConfig] = None,
        store: Optional[KeyValueStore] = None,
        dispatcher: Optional[UrlDispatcher] = None,
        settings: Optional[Dict[str, Any]] = None,
    ):
        if settings is None:
            settings = get_client_settings()
        self.settings = settings
        self.config = config if config is not None else LinkConfig(
            base_url=settings["production_url"],
            production_url=settings["production_url"],
            sandbox_url=settings["sandbox_url"],
        )
        self.timeout = settings["timeout"]
        self.app_store_url = settings["app_store_url"]
        if store is None:
            store = JsonFileStore(settings["store_path"])
        self.device_ids = DeviceIdProvider(store)
        self.dispatcher = dispatcher if dispatcher is not None else WebBrowserDispatcher(
            settings["registered_schemes"]
        )

    # Configuration

    def configure(
        self,
        app_id: Optional[str] = None,
        api_url: Optional[str] = None,
        *,
        api_key: Optional[str] = None,
        stacklevel: int = 2,
    ):
        """See LinkConfig.configure."""
        self.config.configure(app_id, api_url, api_key=api_key, stacklevel=stacklevel + 1)

    def use_sandbox(self):
        self.config.use_sandbox()

    # Device identity

    def get_device_id(self) -> str:
        return self.device_ids.get_device_id()

    # Linking

    @property
    def is_feedback_app_installed(self) -> bool:
        """Whether a handler is registered for cutie://. No network call."""
        return self.dispatcher.can_open(FEEDBACK_APP_URL)

    def open_feedback_app(self, fallback_to_store: bool = True) -> bool:
        """Open the Feedback App, blocking while the token is requested.

        :param fallback_to_store: open the App Store when the app is missing;
            when False, raise FeedbackAppNotInstalledError instead.
        :return: True if the Feedback App was opened, False if the App Store
            was opened instead.
        :raises CutiELinkError: on missing configuration or a failed token request.
        """
        self._require_configured()
        token = self._fetch_token()
        return self._open_deep_link(token, fallback_to_store)

    async def open_feedback_app_async(self, fallback_to_store: bool = True) -> bool:
        """Like open_feedback_app, without blocking the event loop.

        The device ID lookup and the token request run in a worker thread;
        the URL opens run on the loop's own thread.
        """
        self._require_configured()
        token = await asyncio.to_thread(self._fetch_token)
        return self._open_deep_link(token, fallback_to_store)

    def _require_configured(self):
        if not self.config.is_configured:
            raise NotConfiguredError()

    def _fetch_token(self) -> str:
        # Reads and may write the device ID file, then waits on the network
        config = self.config
        return request_link_token(
            base_url=config.base_url,
            device_id=self.device_ids.get_device_id(),
            app_id=config.app_id,
            api_key=config.api_key,
            timeout=self.timeout,
        )

    def _open_deep_link(self, token: str, fallback_to_store: bool) -> bool:
        deep_link = build_deep_link(token)

        # The app may disappear between the check and the open; the open
        # result decides.
        if self.dispatcher.can_open(deep_link):
            if self.dispatcher.open(deep_link):
                return True
            print("[CutiELink] Feedback App did not accept the link")

        if not fallback_to_store:
            raise FeedbackAppNotInstalledError()

        print("[CutiELink] Feedback App not installed, opening App Store")
        self._open_app_store()
        return False

    def _open_app_store(self):
        # Best effort: a failed fallback is not reported to the caller
        try:
            if not self.dispatcher.open(self.app_store_url):
                print(f"[CutiELink] Could not open App Store page {self.app_store_url}")
        except Exception as e:
            print(f"[CutiELink] Could not open App Store page {self.app_store_url}: {e}")


# Process-wide client for "configure once at launch" usage

_shared: Optional[LinkClient] = None
_shared_lock = threading.Lock()


def get_shared_client() -> LinkClient:
    """The process-wide LinkClient, created on first use."""
    global _shared
    with _shared_lock:
        if _shared is None:
            _shared = LinkClient()
        return _shared


def set_shared_client(client: Optional[LinkClient]):
    """Replace (or with None, reset) the process-wide client."""
    global _shared
    with _shared_lock:
        _shared = client


def configure(app_id: Optional[str] = None, api_url: Optional[str] = None, *, api_key: Optional[str] = None):
    get_shared_client().configure(app_id, api_url, api_key=api_key, stacklevel=3)


def use_sandbox():
    get_shared_client().use_sandbox()


def open_feedback_app(fallback_to_store: bool = True) -> bool:
    return get_shared_client().open_feedback_app(fallback_to_store)


async def open_feedback_app_async(fallback_to_store: bool = True) -> bool:
    return await get_shared_client().open_feedback_app_async(fallback_to_store)


def is_feedback_app_installed() -> bool:
    return get_shared_client().is_feedback_app_installed


def get_device_id() -> str:
    return get_shared_client().get_device_id()
