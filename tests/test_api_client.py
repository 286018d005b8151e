"""
Tests for the CLI's API client when the server answers with something other than JSON.
"""
import httpx
import pytest

from genmode.client.api import GenModeClient
from genmode.client.identity import HttpIdentityProvider
from genmode.llm_client import TRANSLATE_FAILED_MESSAGE
from genmode.results import Err, ErrorKind
from genmode.stats import ZERO_STATS


@pytest.fixture
async def html_client():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>upstream proxy</html>"))
    provider = HttpIdentityProvider("http://test", transport=transport)
    client = GenModeClient("http://test", provider, transport=transport)
    yield client
    await client.aclose()
    await provider.aclose()


class TestNonJsonResponses:
    async def test_translate_returns_err(self, html_client):
        result = await html_client.translate("hello", persona="gamer")
        assert result == Err(ErrorKind.TRANSIENT, TRANSLATE_FAILED_MESSAGE)

    async def test_history_falls_back_to_empty(self, html_client):
        assert await html_client.history() == []

    async def test_personas_falls_back_to_empty(self, html_client):
        assert await html_client.personas() == []

    async def test_stats_falls_back_to_zero(self, html_client):
        assert await html_client.stats() == ZERO_STATS

    async def test_error_status_with_html_body(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(502, text="<html>bad gateway</html>"))
        provider = HttpIdentityProvider("http://test", transport=transport)
        client = GenModeClient("http://test", provider, transport=transport)
        result = await client.translate("hello")
        assert result == Err(ErrorKind.TRANSIENT, TRANSLATE_FAILED_MESSAGE)
        await client.aclose()
        await provider.aclose()
