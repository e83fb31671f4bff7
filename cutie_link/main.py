"""
Cuti-E Link command line client.

Opens the Cuti-E Feedback App for the configured app, or reports the
device ID / installation status. Credentials come from the command line or
from CUTIE_LINK_APP_ID / CUTIE_LINK_API_KEY.
"""

import argparse
import sys
import warnings

from .client import LinkClient
from .config.loader import get_client_settings, get_credentials
from .dispatch import RecordingDispatcher
from .errors import CutiELinkError

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_STORE_OPENED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cutie-link", description="Open the Cuti-E Feedback App")
    parser.add_argument("--app-id", help="App ID from the Cuti-E dashboard (or CUTIE_LINK_APP_ID)")
    parser.add_argument("--api-key", help="Legacy API key (or CUTIE_LINK_API_KEY)")
    parser.add_argument("--api-url", help="Token API base URL (default: production)")
    parser.add_argument("--sandbox", action="store_true", help="Use the sandbox API")
    parser.add_argument("--device-id", action="store_true", help="Print this installation's device ID and exit")
    parser.add_argument("--installed", action="store_true", help="Report whether the Feedback App is installed and exit")
    parser.add_argument("--no-store", action="store_true", help="Fail instead of opening the App Store")
    parser.add_argument("--dry-run", action="store_true", help="Print URLs instead of opening them")
    return parser


def configure_client(client: LinkClient, args) -> None:
    """Apply credentials from arguments, falling back to the environment."""
    creds = get_credentials()
    app_id = args.app_id or creds["app_id"]
    api_key = args.api_key or creds["api_key"]

    if api_key:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", DeprecationWarning)
            client.configure(app_id, api_key=api_key)
        if args.api_url:
            client.config.base_url = args.api_url
    elif app_id:
        client.configure(app_id, args.api_url)

    if args.sandbox:
        client.use_sandbox()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_client_settings()
    dispatcher = None
    if args.dry_run:
        dispatcher = RecordingDispatcher(settings["registered_schemes"])
    client = LinkClient(dispatcher=dispatcher, settings=settings)
    configure_client(client, args)

    if args.device_id:
        print(client.get_device_id())
        return EXIT_OK

    if args.installed:
        installed = client.is_feedback_app_installed
        print("installed" if installed else "not installed")
        return EXIT_OK if installed else EXIT_STORE_OPENED

    try:
        opened = client.open_feedback_app(fallback_to_store=not args.no_store)
    except CutiELinkError as e:
        print(f"[CutiELink] Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.dry_run:
        for url in dispatcher.opened:
            print(f"[CutiELink] Would open: {url}")

    if opened:
        print("[CutiELink] Feedback App opened.")
        return EXIT_OK
    print("[CutiELink] Feedback App not installed; App Store opened.")
    return EXIT_STORE_OPENED


if __name__ == "__main__":
    sys.exit(main())
