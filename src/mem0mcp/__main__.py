"""Command-line entry point: ``python -m mem0mcp`` / ``mem0mcp``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from dataclasses import replace

import uvicorn
from dotenv import load_dotenv

from mem0mcp import server
from mem0mcp.config import ServerConfig
from mem0mcp.config_reader import load_config
from mem0mcp.http_api import create_app

logger = logging.getLogger("mem0mcp")

TRANSPORTS = ("stdio", "sse", "streamable-http")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mem0mcp",
        description="Long-term memory server over MCP and HTTP.",
    )
    parser.add_argument("--transport", choices=TRANSPORTS, default=None)
    parser.add_argument(
        "--http",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Serve the HTTP API (defaults to HTTP_SERVER_ENABLED).",
    )
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    return parser.parse_args(argv)


def _apply_args(config: ServerConfig, args: argparse.Namespace) -> ServerConfig:
    http = config.http
    if args.http is not None:
        http = replace(http, enabled=args.http)
    if args.host is not None:
        http = replace(http, host=args.host)
    if args.port is not None:
        http = replace(http, port=args.port)
    return replace(
        config,
        transport=args.transport or config.transport,
        host=args.host or config.host,
        port=args.port or config.port,
        http=http,
    )


def _configure_logging(debug: bool) -> None:
    # stderr keeps stdout free for the stdio transport.
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        stream=sys.stderr,
    )


async def _serve(config: ServerConfig) -> None:
    service = await server.configure(config)
    try:
        if config.transport == "stdio":
            tasks = [server.mcp.run_async(transport="stdio")]
            if config.http.enabled:
                app = create_app(service, config)
                http_server = uvicorn.Server(
                    uvicorn.Config(app, host=config.http.host, port=config.http.port)
                )
                tasks.append(http_server.serve())
            await asyncio.gather(*tasks)
        elif config.http.enabled:
            mcp_app = server.mcp.http_app(
                path="/",
                transport="sse" if config.transport == "sse" else "http",
            )
            app = create_app(service, config, mcp_app=mcp_app)
            logger.info(
                "Serving HTTP API and MCP (%s) at http://%s:%d",
                config.transport,
                config.http.host,
                config.http.port,
            )
            await uvicorn.Server(
                uvicorn.Config(app, host=config.http.host, port=config.http.port)
            ).serve()
        else:
            await server.mcp.run_async(
                transport=config.transport, host=config.host, port=config.port
            )
    finally:
        await server.shutdown()


def main(argv: list[str] | None = None) -> None:
    load_dotenv(override=False)
    args = _parse_args(argv)
    _configure_logging(os.environ.get("DEBUG", "").lower() == "true")
    config = _apply_args(load_config(os.environ), args)
    logger.info("Starting %s (transport=%s)", config.name, config.transport)
    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()
