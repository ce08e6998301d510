"""
Tests for remote document loading.
"""

from unittest.mock import patch

import httpx
import pytest

from cellpad.config import Settings
from cellpad.errors import InvalidRemoteURL, LoadFailure
from cellpad.remote import blob_to_raw, fetch_text, resolve_url

BLOB = "https://github.com/acme/notes/blob/main/docs/demo.js"
RAW = "https://raw.githubusercontent.com/acme/notes/main/docs/demo.js"


def response(status, text=""):
    return httpx.Response(status, text=text, request=httpx.Request("GET", RAW))


class TestUrls:
    def test_blob_to_raw(self):
        assert blob_to_raw(BLOB) == RAW

    def test_blob_to_raw_rejects_other_urls(self):
        with pytest.raises(InvalidRemoteURL):
            blob_to_raw("https://example.com/demo.js")

    def test_resolve_passes_plain_urls(self):
        assert resolve_url(RAW) == RAW

    def test_resolve_converts_blob(self):
        assert resolve_url(BLOB) == RAW

    def test_resolve_rejects_non_http(self):
        with pytest.raises(InvalidRemoteURL) as exc:
            resolve_url("ftp://example.com/demo.js")
        assert isinstance(exc.value, LoadFailure)


class TestFetchText:
    def setup_method(self):
        self.settings = Settings(fetch_timeout=5)

    def test_fetch_success(self):
        with patch.object(httpx.Client, "get", return_value=response(200, "// [CODE STARTS]")) as get:
            text = fetch_text(BLOB, settings=self.settings)

        assert text == "// [CODE STARTS]"
        get.assert_called_once_with(RAW)

    def test_fetch_error_status(self):
        with patch.object(httpx.Client, "get", return_value=response(404)):
            with pytest.raises(LoadFailure) as exc:
                fetch_text(BLOB, settings=self.settings)

        assert exc.value.reason == "HTTP 404"
        assert exc.value.url == BLOB

    def test_fetch_network_error(self):
        with patch.object(httpx.Client, "get", side_effect=httpx.ConnectError("refused")):
            with pytest.raises(LoadFailure) as exc:
                fetch_text(RAW, settings=self.settings)

        assert "refused" in str(exc.value)

    def test_invalid_url_raises_load_failure(self):
        with pytest.raises(LoadFailure):
            fetch_text("not a url", settings=self.settings)
