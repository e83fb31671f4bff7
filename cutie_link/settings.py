"""
Credential and endpoint holder for a LinkClient.
"""

import warnings
from dataclasses import dataclass
from typing import Optional

from .config.loader import PRODUCTION_URL, SANDBOX_URL


@dataclass
class LinkConfig:
    """Mutable per-client configuration.

    Only the configure methods write to it; the link flow only reads it.
    Credentials are not validated here. A missing credential is reported
    when a link is opened.
    """

    api_key: Optional[str] = None
    app_id: Optional[str] = None
    base_url: str = PRODUCTION_URL
    production_url: str = PRODUCTION_URL
    sandbox_url: str = SANDBOX_URL

    def configure(
        self,
        app_id: Optional[str] = None,
        api_url: Optional[str] = None,
        *,
        api_key: Optional[str] = None,
        stacklevel: int = 2,
    ):
        """Configure with an App ID, or with a legacy API key.

        configure(app_id, api_url=None)
            Sets the App ID, clears any API key and points at ``api_url``
            (production when omitted).
        configure(api_key=..., app_id=None)
            Deprecated. Sets the API key and the optional App ID and keeps
            the current base URL.

        ``stacklevel`` is forwarded to the deprecation warning so wrappers
        can attribute it to their own caller.
        """
        if api_key is not None:
            warnings.warn(
                "configure(api_key=...) is deprecated, use configure(app_id) instead",
                DeprecationWarning,
                stacklevel=stacklevel,
            )
            self.api_key = api_key
            self.app_id = app_id
            return

        if app_id is None:
            raise TypeError("configure() requires app_id or api_key")
        self.app_id = app_id
        self.api_key = None
        self.base_url = api_url if api_url is not None else self.production_url

    def use_sandbox(self):
        """Point token requests at the sandbox API."""
        self.base_url = self.sandbox_url

    @property
    def is_configured(self) -> bool:
        return self.api_key is not None or self.app_id is not None
