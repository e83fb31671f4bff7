import asyncio
import threading
import unittest
import warnings
from unittest.mock import MagicMock, patch

import cutie_link
from cutie_link.auth.device_store import DEVICE_ID_KEY, MemoryStore
from cutie_link.client import LinkClient, build_deep_link
from cutie_link.dispatch import RecordingDispatcher
from cutie_link.errors import (
    FeedbackAppNotInstalledError,
    InvalidCredentialsError,
    InvalidDeepLinkError,
    InvalidResponseError,
    NotConfiguredError,
    ServerError,
)

SETTINGS = {
    "production_url": "https://api.cuti-e.com",
    "sandbox_url": "https://cutie-worker-sandbox.invotekas.workers.dev",
    "timeout": 60.0,
    "app_store_url": "https://apps.apple.com/app/cuti-e-feedback/id0000000000",
    "store_path": None,
    "registered_schemes": [],
}
APP_STORE_URL = SETTINGS["app_store_url"]


def make_response(status_code=200, body=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body
    return resp


class TestBuildDeepLink(unittest.TestCase):
    def test_plain_token(self):
        self.assertEqual(build_deep_link("abc123"), "cutie://link?token=abc123")

    def test_reserved_characters_are_escaped(self):
        self.assertEqual(build_deep_link("a b&c=d/e"), "cutie://link?token=a%20b%26c%3Dd%2Fe")

    def test_unencodable_token(self):
        with self.assertRaises(InvalidDeepLinkError):
            build_deep_link("abc\ud800")


@patch("cutie_link.auth.token.requests.post")
class TestOpenFeedbackApp(unittest.TestCase):
    def setUp(self):
        self.store = MemoryStore({DEVICE_ID_KEY: "DEVICE-1"})
        self.installed = RecordingDispatcher(registered_schemes=["cutie"])
        self.client = LinkClient(store=self.store, dispatcher=self.installed, settings=SETTINGS)

    def test_not_configured_makes_no_request(self, mock_post):
        with self.assertRaises(NotConfiguredError):
            self.client.open_feedback_app()
        mock_post.assert_not_called()
        self.assertEqual(self.installed.opened, [])

    def test_opens_deep_link_when_installed(self, mock_post):
        mock_post.return_value = make_response(200, {"token": "abc123"})
        self.client.configure("app-1")

        self.assertTrue(self.client.open_feedback_app())

        self.assertEqual(self.installed.opened, ["cutie://link?token=abc123"])
        kwargs = mock_post.call_args.kwargs
        self.assertEqual(kwargs["json"], {"device_id": "DEVICE-1", "app_id": "app-1"})
        self.assertEqual(kwargs["headers"]["X-Device-ID"], "DEVICE-1")
        self.assertEqual(kwargs["timeout"], 60.0)

    def test_opens_app_store_when_not_installed(self, mock_post):
        mock_post.return_value = make_response(200, {"token": "abc123"})
        dispatcher = RecordingDispatcher()
        client = LinkClient(store=self.store, dispatcher=dispatcher, settings=SETTINGS)
        client.configure("app-1")

        self.assertFalse(client.open_feedback_app())

        self.assertEqual(dispatcher.checked, ["cutie://link?token=abc123"])
        self.assertEqual(dispatcher.opened, [APP_STORE_URL])

    def test_no_store_fallback_raises(self, mock_post):
        mock_post.return_value = make_response(200, {"token": "abc123"})
        dispatcher = RecordingDispatcher()
        client = LinkClient(store=self.store, dispatcher=dispatcher, settings=SETTINGS)
        client.configure("app-1")

        with self.assertRaises(FeedbackAppNotInstalledError):
            client.open_feedback_app(fallback_to_store=False)
        self.assertEqual(dispatcher.opened, [])

    def test_failed_open_falls_back_to_store(self, mock_post):
        mock_post.return_value = make_response(200, {"token": "abc123"})
        dispatcher = RecordingDispatcher(registered_schemes=["cutie"], open_result=False)
        client = LinkClient(store=self.store, dispatcher=dispatcher, settings=SETTINGS)
        client.configure("app-1")

        self.assertFalse(client.open_feedback_app())
        self.assertEqual(dispatcher.opened, ["cutie://link?token=abc123", APP_STORE_URL])

    def test_store_fallback_failure_is_not_reported(self, mock_post):
        mock_post.return_value = make_response(200, {"token": "abc123"})
        dispatcher = MagicMock()
        dispatcher.can_open.return_value = False
        dispatcher.open.side_effect = RuntimeError("no browser")
        client = LinkClient(store=self.store, dispatcher=dispatcher, settings=SETTINGS)
        client.configure("app-1")

        self.assertFalse(client.open_feedback_app())
        dispatcher.open.assert_called_once_with(APP_STORE_URL)

    def test_invalid_credentials_opens_nothing(self, mock_post):
        mock_post.return_value = make_response(401, {})
        self.client.configure("app-1")

        with self.assertRaises(InvalidCredentialsError):
            self.client.open_feedback_app()
        self.assertEqual(self.installed.checked, [])
        self.assertEqual(self.installed.opened, [])

    def test_server_error(self, mock_post):
        mock_post.return_value = make_response(500, {})
        self.client.configure("app-1")

        with self.assertRaises(ServerError) as ctx:
            self.client.open_feedback_app()
        self.assertEqual(ctx.exception.status_code, 500)

    def test_missing_token_field(self, mock_post):
        mock_post.return_value = make_response(200, {"status": "ok"})
        self.client.configure("app-1")

        with self.assertRaises(InvalidResponseError):
            self.client.open_feedback_app()
        self.assertEqual(self.installed.opened, [])

    def test_sandbox_targets_sandbox_host(self, mock_post):
        mock_post.return_value = make_response(200, {"token": "abc123"})
        self.client.configure("app-1", "https://custom.example.com")
        self.client.use_sandbox()

        self.client.open_feedback_app()

        self.assertEqual(
            mock_post.call_args.args[0],
            "https://cutie-worker-sandbox.invotekas.workers.dev/v1/feedback-app/generate-token",
        )

    def test_legacy_api_key(self, mock_post):
        mock_post.return_value = make_response(200, {"token": "abc123"})
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", DeprecationWarning)
            self.client.configure("app-1", api_key="key-1")

        self.assertTrue(self.client.open_feedback_app())

        headers = mock_post.call_args.kwargs["headers"]
        self.assertEqual(headers["X-API-Key"], "key-1")
        self.assertEqual(headers["X-App-ID"], "app-1")

    def test_new_device_id_is_persisted(self, mock_post):
        mock_post.return_value = make_response(200, {"token": "abc123"})
        store = MemoryStore()
        client = LinkClient(store=store, dispatcher=self.installed, settings=SETTINGS)
        client.configure("app-1")

        client.open_feedback_app()

        sent = mock_post.call_args.kwargs["json"]["device_id"]
        self.assertEqual(store.get(DEVICE_ID_KEY), sent)
        self.assertEqual(client.get_device_id(), sent)

    def test_each_call_requests_a_new_token(self, mock_post):
        mock_post.side_effect = [
            make_response(200, {"token": "first"}),
            make_response(200, {"token": "second"}),
        ]
        self.client.configure("app-1")

        self.client.open_feedback_app()
        self.client.open_feedback_app()

        self.assertEqual(mock_post.call_count, 2)
        self.assertEqual(
            self.installed.opened,
            ["cutie://link?token=first", "cutie://link?token=second"],
        )

    def test_async_variant(self, mock_post):
        mock_post.return_value = make_response(200, {"token": "abc123"})
        self.client.configure("app-1")

        opened = asyncio.run(self.client.open_feedback_app_async())

        self.assertTrue(opened)
        self.assertEqual(self.installed.opened, ["cutie://link?token=abc123"])

    def test_async_device_id_lookup_leaves_event_loop_thread(self, mock_post):
        mock_post.return_value = make_response(200, {"token": "abc123"})
        self.client.configure("app-1")
        lookup_threads = []
        real_get = self.client.device_ids.get_device_id

        def recording_get():
            lookup_threads.append(threading.get_ident())
            return real_get()

        async def run():
            with patch.object(self.client.device_ids, "get_device_id", side_effect=recording_get):
                opened = await self.client.open_feedback_app_async()
            return opened, threading.get_ident()

        opened, loop_thread = asyncio.run(run())

        self.assertTrue(opened)
        self.assertEqual(len(lookup_threads), 1)
        self.assertNotEqual(lookup_threads[0], loop_thread)

    def test_unsendable_app_id_is_invalid_credentials(self, mock_post):
        self.client.configure("appé-日本")

        with self.assertRaises(InvalidCredentialsError):
            self.client.open_feedback_app()
        mock_post.assert_not_called()
        self.assertEqual(self.installed.opened, [])

    def test_legacy_configure_warning_points_at_caller(self, mock_post):
        with self.assertWarns(DeprecationWarning) as ctx:
            self.client.configure(api_key="key-1")
        self.assertEqual(ctx.filename, __file__)

    def test_async_not_configured(self, mock_post):
        with self.assertRaises(NotConfiguredError):
            asyncio.run(self.client.open_feedback_app_async())
        mock_post.assert_not_called()

    def test_installed_check_makes_no_request(self, mock_post):
        self.assertTrue(self.client.is_feedback_app_installed)
        self.assertEqual(self.installed.checked, ["cutie://"])
        mock_post.assert_not_called()

        client = LinkClient(store=self.store, dispatcher=RecordingDispatcher(), settings=SETTINGS)
        self.assertFalse(client.is_feedback_app_installed)


@patch("cutie_link.auth.token.requests.post")
class TestSharedClient(unittest.TestCase):
    def setUp(self):
        self.dispatcher = RecordingDispatcher(registered_schemes=["cutie"])
        cutie_link.set_shared_client(
            LinkClient(store=MemoryStore(), dispatcher=self.dispatcher, settings=SETTINGS)
        )

    def tearDown(self):
        cutie_link.set_shared_client(None)

    def test_module_level_flow(self, mock_post):
        mock_post.return_value = make_response(200, {"token": "abc123"})
        cutie_link.configure("app-1")
        cutie_link.use_sandbox()

        self.assertTrue(cutie_link.is_feedback_app_installed())
        self.assertTrue(cutie_link.open_feedback_app())
        self.assertTrue(mock_post.call_args.args[0].startswith(SETTINGS["sandbox_url"]))
        self.assertEqual(self.dispatcher.opened, ["cutie://link?token=abc123"])

    def test_module_level_not_configured(self, mock_post):
        with self.assertRaises(NotConfiguredError):
            cutie_link.open_feedback_app()
        mock_post.assert_not_called()

    def test_legacy_configure_warns(self, mock_post):
        with self.assertWarns(DeprecationWarning) as ctx:
            cutie_link.configure(api_key="key-1")
        self.assertEqual(ctx.filename, __file__)
        self.assertEqual(cutie_link.get_shared_client().config.api_key, "key-1")

    def test_device_id_is_stable(self, mock_post):
        self.assertEqual(cutie_link.get_device_id(), cutie_link.get_device_id())


if __name__ == "__main__":
    unittest.main()
