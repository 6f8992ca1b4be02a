import pytest

from src.utils.seo import controller
from src.utils.seo.errors import CredentialUnavailableError, InvalidResponseFormatError


class StubService:
    """Records calls and returns canned results instead of hitting Ahrefs"""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def _respond(self, name, *args):
        self.calls.append((name, args))
        if self.error:
            raise self.error
        return self.result

    async def get_backlinks(self, domain):
        return await self._respond("get_backlinks", domain)

    async def get_keyword_ideas(self, keyword, country, search_engine):
        return await self._respond("get_keyword_ideas", keyword, country, search_engine)

    async def get_keyword_difficulty(self, keyword, country):
        return await self._respond("get_keyword_difficulty", keyword, country)

    async def check_traffic(self, domain_or_url, mode, country):
        return await self._respond("check_traffic", domain_or_url, mode, country)


@pytest.mark.asyncio
async def test_get_backlinks_success():
    service = StubService(result={"overview": {}, "backlinks": []})

    response = await controller.get_backlinks(service, {"domain": "example.com"})

    assert response == {
        "success": True,
        "data": {"overview": {}, "backlinks": []},
        "error": None,
    }
    assert service.calls == [("get_backlinks", ("example.com",))]


@pytest.mark.asyncio
async def test_get_backlinks_requires_domain():
    service = StubService()

    response = await controller.get_backlinks(service, {})

    assert response["success"] is False
    assert "Domain is required" in response["error"]
    assert service.calls == []


@pytest.mark.asyncio
async def test_keyword_ideas_defaults():
    service = StubService(result=[])

    await controller.get_keyword_ideas(service, {"keyword": "seo"})

    assert service.calls == [("get_keyword_ideas", ("seo", "us", "Google"))]


@pytest.mark.asyncio
async def test_keyword_difficulty_wraps_domain_errors():
    service = StubService(error=InvalidResponseFormatError("expected tag 'Ok'"))

    response = await controller.get_keyword_difficulty(
        service, {"keyword": "seo", "country": "de"}
    )

    assert response["success"] is False
    assert response["error"] == (
        "Error retrieving Keyword Difficulty for keyword=seo, country=de: "
        "expected tag 'Ok'"
    )


@pytest.mark.asyncio
async def test_traffic_defaults_and_mode_validation():
    service = StubService(result={})

    await controller.get_traffic(service, {"domainOrUrl": "example.com"})
    response = await controller.get_traffic(
        service, {"domainOrUrl": "example.com", "mode": "prefix"}
    )

    assert service.calls == [("check_traffic", ("example.com", "subdomains", "None"))]
    assert response["success"] is False
    assert "Mode must be either" in response["error"]


@pytest.mark.asyncio
async def test_credential_errors_surface_in_response():
    service = StubService(
        error=CredentialUnavailableError("example.com", "Failed to get signature")
    )

    response = await controller.get_backlinks(service, {"domain": "example.com"})

    assert response["error"] == (
        "Error retrieving Backlinks for domain=example.com: "
        "Failed to get signature for example.com"
    )
