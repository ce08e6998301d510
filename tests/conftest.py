"""Pytest fixtures shared across all test modules."""

import httpx
import pytest

from cellpad.config import Settings
from cellpad.kernel import NotebookKernel
from cellpad.session import NotebookSession


SAMPLE_DOCUMENT = """/* Markdown (render)
# Title
*/

// [CODE STARTS]
persistent_scope["x"] = 1
console.log(persistent_scope["x"] + 1)
// [CODE ENDS]

/* Output Sample

2

*/

/* Markdown
draft note
*/

// [CODE STARTS]
console.log(persistent_scope["x"] * 10)
// [CODE ENDS]"""


@pytest.fixture
def fetched_urls():
    return []


@pytest.fixture
def fake_fetch(fetched_urls):
    """Network stand-in for cells: answers every request with its own URL."""

    async def fetch(url, method="GET", **kwargs):
        fetched_urls.append(url)
        return httpx.Response(200, text=f"body of {url}", request=httpx.Request(method, url))

    return fetch


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def kernel(fake_fetch, settings):
    return NotebookKernel(fetch=fake_fetch, settings=settings)


@pytest.fixture
def session(kernel, settings):
    """Empty session whose kernel never touches the network."""
    return NotebookSession(kernel=kernel, settings=settings)


@pytest.fixture
def sample_document():
    return SAMPLE_DOCUMENT


@pytest.fixture
def loaded_session(session, sample_document):
    session.load_text(sample_document)
    return session
