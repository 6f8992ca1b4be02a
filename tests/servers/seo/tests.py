import json
import threading

import httpx
import pytest
import respx
from mcp.shared.memory import create_connected_server_and_client_session

from src.servers.local import available_servers, load_server
import src.servers.seo.main as seo_main
from src.utils.seo.cache import MemorySignatureCache

API = "https://ahrefs.com/v4"


@pytest.mark.asyncio
async def test_seo_server_is_discoverable():
    assert "seo" in available_servers()

    create_server, get_initialization_options = await load_server("seo")
    options = get_initialization_options(create_server(user_id="test"))

    assert options.server_name == "seo-server"
    assert options.server_version == "1.0.0"


@pytest.mark.asyncio
async def test_load_unknown_server_fails():
    with pytest.raises(LookupError):
        await load_server("does-not-exist")


@pytest.mark.asyncio
async def test_list_tools(server):
    async with create_connected_server_and_client_session(server) as session:
        tools = (await session.list_tools()).tools
        resources = (await session.list_resources()).resources

    assert {tool.name for tool in tools} == {
        "get_backlinks_list",
        "keyword_generator",
        "keyword_difficulty",
        "get_traffic",
    }
    assert resources == []


@pytest.mark.asyncio
async def test_unknown_tool(server):
    async with create_connected_server_and_client_session(server) as session:
        result = await session.call_tool("does_not_exist", {})

    assert result.content[0].text == "Unknown tool: does_not_exist"


@pytest.mark.asyncio
async def test_backlinks_without_capsolver_key(server, http_mock):
    capsolver = http_mock.route(host="api.capsolver.com")

    async with create_connected_server_and_client_session(server) as session:
        result = await session.call_tool(
            "get_backlinks_list", {"domain": "example.com"}
        )

    text = result.content[0].text
    assert text.startswith("Error: Error retrieving Backlinks for domain=example.com")
    assert "Failed to get verification token" in text
    assert capsolver.call_count == 0


@pytest.mark.asyncio
async def test_backlinks_from_cached_signature(server, http_mock):
    server.cache.store["example.com"] = {
        "signature": "cached-sig",
        "validUntil": "2999-01-01T00:00:00Z",
        "overviewData": {"domainRating": 42},
        "timestamp": 1.0,
    }
    http_mock.post(f"{API}/stGetFreeBacklinksList").mock(
        return_value=httpx.Response(
            200,
            json=["Ok", {"topBacklinks": {"backlinks": [{"anchor": "hi"}]}}],
        )
    )

    async with create_connected_server_and_client_session(server) as session:
        result = await session.call_tool(
            "get_backlinks_list", {"domain": "example.com"}
        )

    assert json.loads(result.content[0].text) == {
        "overview": {"domainRating": 42},
        "backlinks": [
            {
                "anchor": "hi",
                "domainRating": 0,
                "title": "",
                "urlFrom": "",
                "urlTo": "",
                "edu": False,
                "gov": False,
            }
        ],
    }


@pytest.mark.asyncio
async def test_keyword_difficulty_with_solved_challenge(server, http_mock, monkeypatch):
    monkeypatch.setenv("CAPSOLVER_API_KEY", "test-key")
    http_mock.post("https://api.capsolver.com/createTask").mock(
        return_value=httpx.Response(200, json={"errorId": 0, "taskId": "task-1"})
    )
    http_mock.post("https://api.capsolver.com/getTaskResult").mock(
        return_value=httpx.Response(
            200, json={"status": "ready", "solution": {"token": "turnstile-token"}}
        )
    )
    http_mock.post(f"{API}/stGetFreeSerpOverviewForKeywordDifficultyChecker").mock(
        return_value=httpx.Response(200, json=["Error", "captcha rejected"])
    )

    async with create_connected_server_and_client_session(server) as session:
        result = await session.call_tool("keyword_difficulty", {"keyword": "seo"})

    text = result.content[0].text
    assert text.startswith("Error: Error retrieving Keyword Difficulty")
    assert "expected tag 'Ok'" in text


def test_cli_rejects_unknown_traffic_mode():
    with pytest.raises(SystemExit):
        seo_main.main(["get-traffic", "--domain", "example.com", "--mode", "prefix"])


def test_cli_reports_errors_on_stderr(capsys):
    exit_code = seo_main.main(["get-backlinks", "--domain", "example.com"])

    assert exit_code == 1
    assert "Failed to get verification token" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_api_key_lookup_runs_off_the_event_loop(monkeypatch, http_mock):
    lookup_threads = []

    def fake_lookup(user_id, api_key=None):
        lookup_threads.append(threading.get_ident())
        return None

    monkeypatch.setattr(seo_main, "get_capsolver_api_key", fake_lookup)
    server = seo_main.create_server(user_id="test", cache=MemorySignatureCache())

    async with create_connected_server_and_client_session(server) as session:
        await session.call_tool("keyword_generator", {"keyword": "seo"})

    assert len(lookup_threads) == 1
    assert lookup_threads[0] != threading.get_ident()


def test_cli_prints_json(capsys, tmp_path):
    cache_file = tmp_path / "cache" / "signatures.json"
    cache_file.parent.mkdir(parents=True, exist_ok=True)
    cache_file.write_text(
        json.dumps(
            {
                "example.com": {
                    "signature": "cached-sig",
                    "validUntil": "2999-01-01T00:00:00Z",
                    "overviewData": None,
                    "timestamp": 1.0,
                }
            }
        )
    )

    with respx.mock(assert_all_called=False) as mock:
        mock.post(f"{API}/stGetFreeBacklinksList").mock(
            return_value=httpx.Response(200, json=["Ok", {}])
        )
        exit_code = seo_main.main(["get-backlinks", "--domain", "example.com"])

    assert exit_code == 0
    assert json.loads(capsys.readouterr().out) == {"overview": None, "backlinks": []}
