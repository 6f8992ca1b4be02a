import os
import sys
import asyncio
import logging
import argparse
from pathlib import Path
from typing import Optional

project_root = os.path.abspath(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(__file__))))
)
sys.path.insert(0, project_root)
sys.path.insert(0, os.path.join(project_root, "src"))

from mcp.types import (
    Resource,
    TextContent,
    Tool,
    ImageContent,
    EmbeddedResource,
)
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from src.utils.seo import controller
from src.utils.seo.cache import BaseSignatureCache
from src.utils.seo.config import (
    authenticate_and_save_capsolver_key,
    get_capsolver_api_key,
)
from src.utils.seo.service import TRAFFIC_MODES, create_seo_service
from src.utils.utils import render_tool_response

SERVICE_NAME = Path(__file__).parent.name

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(SERVICE_NAME)

TOOL_CONTROLLERS = {
    "get_backlinks_list": controller.get_backlinks,
    "keyword_generator": controller.get_keyword_ideas,
    "keyword_difficulty": controller.get_keyword_difficulty,
    "get_traffic": controller.get_traffic,
}


def create_server(
    user_id, api_key=None, cache: Optional[BaseSignatureCache] = None
):
    """
    Create a new SEO server instance

    Args:
        user_id: User whose saved CapSolver key is used
        api_key: Optional CapSolver API key for this session
        cache: Optional signature cache, defaults to the cache file
    """
    server = Server(f"{SERVICE_NAME}-server")

    server.user_id = user_id
    server.api_key = api_key
    server.cache = cache

    @server.list_resources()
    async def handle_list_resources(
        cursor: Optional[str] = None,
    ) -> list[Resource]:
        logger.info(
            f"Listing resources for user: {server.user_id} with cursor: {cursor}"
        )
        return []

    @server.list_tools()
    async def handle_list_tools() -> list[Tool]:
        """List the free Ahrefs tools"""
        logger.info(f"Listing tools for user: {server.user_id}")
        return [
            Tool(
                name="get_backlinks_list",
                description="Get backlinks list for the specified domain. "
                "Returns backlinks data including anchor text, domain rating, and URLs.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "domain": {
                            "type": "string",
                            "description": "The domain to query for backlinks",
                        },
                    },
                    "required": ["domain"],
                },
            ),
            Tool(
                name="keyword_generator",
                description="Get keyword ideas for the specified keyword. "
                "Returns a list of related keywords with volume and difficulty metrics.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "keyword": {
                            "type": "string",
                            "description": "The seed keyword to generate ideas from",
                        },
                        "country": {
                            "type": "string",
                            "description": 'Country code for keyword research (e.g., "us", "uk")',
                            "default": "us",
                        },
                        "searchEngine": {
                            "type": "string",
                            "description": 'Search engine to use (e.g., "Google", "Bing")',
                            "default": "Google",
                        },
                    },
                    "required": ["keyword"],
                },
            ),
            Tool(
                name="keyword_difficulty",
                description="Get keyword difficulty for the specified keyword. "
                "Returns difficulty score and SERP analysis.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "keyword": {
                            "type": "string",
                            "description": "The keyword to check difficulty for",
                        },
                        "country": {
                            "type": "string",
                            "description": 'Country code for keyword research (e.g., "us", "uk")',
                            "default": "us",
                        },
                    },
                    "required": ["keyword"],
                },
            ),
            Tool(
                name="get_traffic",
                description="Check the estimated search traffic for any website. "
                "Returns traffic data, top pages, keywords, and countries.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "domainOrUrl": {
                            "type": "string",
                            "description": "The domain or URL to check traffic for",
                        },
                        "country": {
                            "type": "string",
                            "description": 'Country code for traffic data (e.g., "us", "uk")',
                            "default": "None",
                        },
                        "mode": {
                            "type": "string",
                            "enum": list(TRAFFIC_MODES),
                            "description": 'Query mode: "subdomains" or "exact"',
                            "default": "subdomains",
                        },
                    },
                    "required": ["domainOrUrl"],
                },
            ),
        ]

    @server.call_tool()
    async def handle_call_tool(
        name: str, arguments: dict | None
    ) -> list[TextContent | ImageContent | EmbeddedResource]:
        """Handle tool execution requests for the SEO tools"""
        logger.info(f"Tool: {name}, User: {server.user_id}")

        if name not in TOOL_CONTROLLERS:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]

        capsolver_api_key = await asyncio.to_thread(
            get_capsolver_api_key, server.user_id, server.api_key
        )
        service = create_seo_service(capsolver_api_key, cache=server.cache)

        response = await TOOL_CONTROLLERS[name](service, arguments or {})
        if not response["success"]:
            logger.error(f"Error processing {name}: {response['error']}")
        return render_tool_response(response)

    return server


server = create_server


def get_initialization_options(server_instance: Server) -> InitializationOptions:
    """Get the initialization options for the server"""
    return InitializationOptions(
        server_name=f"{SERVICE_NAME}-server",
        server_version="1.0.0",
        capabilities=server_instance.get_capabilities(
            notification_options=NotificationOptions(),
            experimental_capabilities={},
        ),
    )


def build_parser():
    parser = argparse.ArgumentParser(
        description="SEO tools backed by free Ahrefs pages"
    )
    parser.add_argument(
        "--user-id", default="local", help="User whose saved CapSolver key is used"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("auth", help="Save a CapSolver API key")

    backlinks = subparsers.add_parser(
        "get-backlinks", help="Get backlinks for a domain"
    )
    backlinks.add_argument(
        "--domain", required=True, help="Domain to get backlinks for"
    )

    ideas = subparsers.add_parser(
        "keyword-generator", help="Get keyword ideas for a keyword"
    )
    ideas.add_argument("--keyword", required=True, help="Keyword to get ideas for")
    ideas.add_argument(
        "--country", default="us", help='Country code (e.g., "us", "uk")'
    )
    ideas.add_argument("--search-engine", default="Google", help="Search engine to use")

    difficulty = subparsers.add_parser(
        "keyword-difficulty", help="Get keyword difficulty for a keyword"
    )
    difficulty.add_argument(
        "--keyword", required=True, help="Keyword to check difficulty for"
    )
    difficulty.add_argument(
        "--country", default="us", help='Country code (e.g., "us", "uk")'
    )

    traffic = subparsers.add_parser(
        "get-traffic", help="Check the estimated search traffic for any website"
    )
    traffic.add_argument("--domain", required=True, help="Domain or URL to check")
    traffic.add_argument("--mode", default="subdomains", choices=TRAFFIC_MODES)
    traffic.add_argument("--country", default="None", help='Country code (e.g., "us")')

    return parser


async def run_command(args, cache: Optional[BaseSignatureCache] = None) -> int:
    """Run one query command and print the result, returning the exit code"""
    service = create_seo_service(get_capsolver_api_key(args.user_id), cache=cache)

    if args.command == "get-backlinks":
        response = await controller.get_backlinks(service, {"domain": args.domain})
    elif args.command == "keyword-generator":
        response = await controller.get_keyword_ideas(
            service,
            {
                "keyword": args.keyword,
                "country": args.country,
                "searchEngine": args.search_engine,
            },
        )
    elif args.command == "keyword-difficulty":
        response = await controller.get_keyword_difficulty(
            service, {"keyword": args.keyword, "country": args.country}
        )
    else:
        response = await controller.get_traffic(
            service,
            {"domainOrUrl": args.domain, "mode": args.mode, "country": args.country},
        )

    if not response["success"]:
        print(f"Error: {response['error']}", file=sys.stderr)
        return 1

    print(render_tool_response(response)[0].text)
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "auth":
        authenticate_and_save_capsolver_key(args.user_id)
        return 0

    return asyncio.run(run_command(args))


# Main handler allows users to auth and run queries from the command line
if __name__ == "__main__":
    sys.exit(main())
