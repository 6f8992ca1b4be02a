import sys
import asyncio
import logging
import argparse

import importlib.util
from pathlib import Path

import mcp.server.stdio

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("seo-mcp-local-stdio")

SERVERS_DIR = Path(__file__).parent.absolute()


def available_servers():
    """Names of the server directories that contain a main.py"""
    return sorted(
        item.name
        for item in SERVERS_DIR.iterdir()
        if item.is_dir() and (item / "main.py").exists()
    )


async def run_stdio_server(server, get_initialization_options):
    """Run the server using stdin/stdout streams"""
    logger.info("Starting stdio server")
    async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            get_initialization_options(),
        )


async def load_server(server_name):
    """
    Load a server module by name

    Returns:
        (create_server, get_initialization_options) from the server's main.py

    Raises:
        LookupError: if the server does not exist or lacks the required entry points
    """
    server_file = SERVERS_DIR / server_name / "main.py"

    if not server_file.exists():
        raise LookupError(
            f"Server '{server_name}' not found at {server_file}. "
            f"Available servers: {', '.join(available_servers())}"
        )

    spec = importlib.util.spec_from_file_location(f"{server_name}.server", server_file)
    server_module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(server_module)

    if not hasattr(server_module, "server") or not hasattr(
        server_module, "get_initialization_options"
    ):
        raise LookupError(
            f"Server '{server_name}' does not have required server or get_initialization_options"
        )

    return server_module.server, server_module.get_initialization_options


async def main():
    """Main entry point for the stdio server"""
    parser = argparse.ArgumentParser(description="SEO MCP Local Stdio Server")
    parser.add_argument(
        "--server",
        default="seo",
        help="Name of the server to run (default: seo)",
    )
    parser.add_argument(
        "--user-id", default="local", help="User ID for server context (optional)"
    )

    args = parser.parse_args()

    logger.info(f"Loading server: {args.server}")
    try:
        server_creator, get_initialization_options = await load_server(args.server)
    except LookupError as e:
        logger.error(str(e))
        sys.exit(1)

    server_instance = server_creator(user_id=args.user_id)

    logger.info(
        f"Starting local stdio server for server: {args.server} with user: {args.user_id}"
    )
    await run_stdio_server(
        server_instance, lambda: get_initialization_options(server_instance)
    )


if __name__ == "__main__":
    logger.info("Starting SEO MCP local stdio server")
    asyncio.run(main())
