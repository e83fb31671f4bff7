"""
URL dispatch for the Cuti-E Link client.

The link flow never talks to the OS directly; it goes through a
UrlDispatcher so hosts can plug in their own URL handling and tests can
record what would have been opened.

Available dispatchers:
- WebBrowserDispatcher: opens URLs with the standard ``webbrowser`` module.
- RecordingDispatcher: remembers opened URLs without opening anything.
"""

import webbrowser
from typing import Iterable, List, Optional
from urllib.parse import urlparse

WEB_SCHEMES = ("http", "https")


def url_scheme(url: str) -> str:
    return urlparse(url).scheme.lower()


class UrlDispatcher:
    """Capability to check for and open URLs.

    Implementations must be called from the host's UI thread (or event
    loop) when the platform requires it; LinkClient only calls them from
    the thread that started the link flow.
    """

    def can_open(self, url: str) -> bool:
        """True if a handler is registered for the URL's scheme."""
        raise NotImplementedError

    def open(self, url: str) -> bool:
        """Open the URL; True once the handler accepted it."""
        raise NotImplementedError


class WebBrowserDispatcher(UrlDispatcher):
    """Dispatcher backed by the system browser.

    ``http``/``https`` are always considered openable. Custom schemes such as
    ``cutie`` count as registered only when listed in ``registered_schemes``,
    since the browser module cannot query the OS for scheme handlers.
    """

    def __init__(self, registered_schemes: Optional[Iterable[str]] = None):
        self.registered_schemes = {s.lower() for s in (registered_schemes or [])}

    def can_open(self, url: str) -> bool:
        scheme = url_scheme(url)
        return scheme in WEB_SCHEMES or scheme in self.registered_schemes

    def open(self, url: str) -> bool:
        try:
            return bool(webbrowser.open(url, new=2))
        except webbrowser.Error as e:
            print(f"[CutiELink] Could not open {url}: {e}")
            return False


class RecordingDispatcher(UrlDispatcher):
    """Records opened URLs instead of opening them."""

    def __init__(self, registered_schemes: Optional[Iterable[str]] = None, open_result: bool = True):
        self.registered_schemes = {s.lower() for s in (registered_schemes or [])}
        self.open_result = open_result
        self.checked: List[str] = []
        self.opened: List[str] = []

    def can_open(self, url: str) -> bool:
        self.checked.append(url)
        return url_scheme(url) in self.registered_schemes

    def open(self, url: str) -> bool:
        self.opened.append(url)
        return self.open_result
