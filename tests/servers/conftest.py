import pytest_asyncio

from src.servers.local import load_server
from src.utils.seo.cache import MemorySignatureCache


@pytest_asyncio.fixture(scope="function")
async def server(request):
    """Server instance for the server named by the test's directory"""
    server_name = request.node.path.parent.name

    server_creator, _ = await load_server(server_name)
    return server_creator(user_id="test", cache=MemorySignatureCache())
