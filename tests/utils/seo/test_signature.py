import json

import httpx
import pytest

from src.utils.seo.cache import FileSignatureCache, MemorySignatureCache
from src.utils.seo.signature import SignatureExchangeClient

OVERVIEW_URL = "https://ahrefs.com/v4/stGetFreeBacklinksOverview"
VALID_UNTIL = "2999-01-01T00:00:00Z"
OVERVIEW_DATA = {"backlinks": 1200, "refdomains": 85, "domainRating": 42}


def overview_response(signature="sig-abc", valid_until=VALID_UNTIL):
    signed_input = {"signature": signature, "input": {"validUntil": valid_until}}
    return ["Ok", {"signedInput": signed_input, "data": OVERVIEW_DATA}]


@pytest.mark.asyncio
async def test_mint_returns_and_caches_credential(http_mock):
    route = http_mock.post(OVERVIEW_URL).mock(
        return_value=httpx.Response(200, json=overview_response())
    )
    cache = MemorySignatureCache()
    client = SignatureExchangeClient(cache, clock=lambda: 1234.0)

    credential = await client.mint("turnstile-token", "example.com")

    assert credential.subject == "example.com"
    assert credential.signature == "sig-abc"
    assert credential.valid_until == VALID_UNTIL
    assert credential.overview_data == OVERVIEW_DATA
    assert credential.minted_at == 1234.0

    assert json.loads(route.calls.last.request.content) == {
        "captcha": "turnstile-token",
        "mode": "subdomains",
        "url": "example.com",
    }
    assert cache.store["example.com"]["signature"] == "sig-abc"
    assert cache.load("example.com") == credential


@pytest.mark.asyncio
async def test_mint_non_2xx_returns_none(http_mock):
    http_mock.post(OVERVIEW_URL).mock(return_value=httpx.Response(403, json={}))
    cache = MemorySignatureCache()

    assert await SignatureExchangeClient(cache).mint("token", "example.com") is None
    assert cache.store == {}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"signature": "sig"},
        ["Ok"],
        ["Ok", {"data": OVERVIEW_DATA}],
        ["Ok", {"signedInput": {"signature": "sig", "input": {}}}],
        ["Ok", {"signedInput": {"input": {"validUntil": VALID_UNTIL}}}],
    ],
)
async def test_mint_malformed_response_returns_none(http_mock, body):
    http_mock.post(OVERVIEW_URL).mock(return_value=httpx.Response(200, json=body))
    cache = MemorySignatureCache()

    assert await SignatureExchangeClient(cache).mint("token", "example.com") is None
    assert cache.store == {}


@pytest.mark.asyncio
async def test_mint_succeeds_when_cache_write_fails(http_mock, tmp_path):
    http_mock.post(OVERVIEW_URL).mock(
        return_value=httpx.Response(200, json=overview_response())
    )
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    client = SignatureExchangeClient(FileSignatureCache(blocker / "cache.json"))

    credential = await client.mint("token", "example.com")

    assert credential is not None
    assert credential.signature == "sig-abc"


@pytest.mark.asyncio
async def test_mint_transport_error_returns_none(http_mock):
    http_mock.post(OVERVIEW_URL).mock(side_effect=httpx.ReadTimeout("slow"))

    client = SignatureExchangeClient(MemorySignatureCache())

    assert await client.mint("token", "example.com") is None


@pytest.mark.asyncio
async def test_mint_rejects_numeric_valid_until(http_mock):
    http_mock.post(OVERVIEW_URL).mock(
        return_value=httpx.Response(
            200, json=overview_response(valid_until=1744469958)
        )
    )
    cache = MemorySignatureCache()

    assert await SignatureExchangeClient(cache).mint("token", "example.com") is None
    assert cache.store == {}
