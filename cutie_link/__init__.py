"""
Cuti-E Link - open the Cuti-E Feedback App from your application.

    import cutie_link

    # Configure once at launch
    cutie_link.configure("your-app-id")

    # When the user taps "Open in Feedback App"
    cutie_link.open_feedback_app()
"""

from .version import __version__
from .errors import (
    CutiELinkError,
    NotConfiguredError,
    InvalidCredentialsError,
    InvalidURLError,
    InvalidDeepLinkError,
    InvalidResponseError,
    ServerError,
    FeedbackAppNotInstalledError,
)
from .settings import LinkConfig
from .auth.device_store import DeviceIdProvider, JsonFileStore, MemoryStore, KeyValueStore
from .dispatch import UrlDispatcher, WebBrowserDispatcher, RecordingDispatcher
from .client import (
    LinkClient,
    build_deep_link,
    configure,
    use_sandbox,
    open_feedback_app,
    open_feedback_app_async,
    is_feedback_app_installed,
    get_device_id,
    get_shared_client,
    set_shared_client,
)
