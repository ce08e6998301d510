"""
Loading documents from a remote source.
"""

import logging
import re
from typing import Optional

import httpx

from cellpad.config import Settings, get_settings
from cellpad.errors import InvalidRemoteURL, LoadFailure

logger = logging.getLogger(__name__)

_BLOB_URL = re.compile(r"^https?://github\.com/([^/]+/[^/]+)/blob/([^/]+)/(.+)$")


def blob_to_raw(blob_url: str) -> str:
    """
    Convert a GitHub blob page URL to the raw file URL.

    >>> blob_to_raw("https://github.com/acme/notes/blob/main/demo.js")
    'https://raw.githubusercontent.com/acme/notes/main/demo.js'
    """
    match = _BLOB_URL.match(blob_url)
    if not match:
        raise InvalidRemoteURL(blob_url)
    repo, branch, file_path = match.groups()
    return f"https://raw.githubusercontent.com/{repo}/{branch}/{file_path}"


def resolve_url(url: str) -> str:
    """Raw URL for GitHub blob links, other http(s) URLs unchanged."""
    if _BLOB_URL.match(url):
        return blob_to_raw(url)
    if not url.startswith(("http://", "https://")):
        raise InvalidRemoteURL(url, "only http and https URLs can be loaded")
    return url


def fetch_text(url: str, settings: Optional[Settings] = None) -> str:
    """
    Download a document.

    Raises:
        LoadFailure: when the URL is unusable, the request fails, or the
            server answers with an error status
    """
    settings = settings or get_settings()
    target = resolve_url(url)
    logger.info("Fetching document from %s", target)
    try:
        with httpx.Client(timeout=settings.fetch_timeout, follow_redirects=True) as client:
            response = client.get(target)
            response.raise_for_status()
            return response.text
    except httpx.HTTPStatusError as e:
        raise LoadFailure(url, f"HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise LoadFailure(url, str(e) or type(e).__name__) from e
