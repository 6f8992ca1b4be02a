import pytest
import respx


class RecordingSleep:
    """Stand-in for asyncio.sleep that records the requested delays"""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def http_mock():
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.delenv("CAPSOLVER_API_KEY", raising=False)
    monkeypatch.setenv(
        "SEO_MCP_CACHE_FILE", str(tmp_path / "cache" / "signatures.json")
    )
    monkeypatch.setenv("SEO_MCP_CREDENTIALS_DIR", str(tmp_path / "credentials"))
