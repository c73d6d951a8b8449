"""rss_content_fixer - HTTP server

Every GET path is appended to the upstream base URL, the feed found there is
rewritten with full article bodies and returned as RSS. When the client
disconnects mid-rewrite the pipeline is cancelled and nothing is written.
"""

import asyncio
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Optional

import click
import httpx
import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from rss_content_fixer.config import ServerConfig, get_config, load_config
from rss_content_fixer.exceptions import UpstreamFeedError
from rss_content_fixer.logging_config import logger, setup_logging
from rss_content_fixer.services.http import create_client
from rss_content_fixer.services.pipeline import rewrite_feed
from rss_content_fixer.storage.cache import ArticleCache


RSS_MEDIA_TYPE = "application/rss+xml; charset=utf-8"

# nginx convention for "client closed request"; never reaches the client
STATUS_CLIENT_CLOSED = 499


class ClientDisconnected(Exception):
    """The client went away before the response was ready."""


def create_app(
    config: Optional[ServerConfig] = None,
    cache: Optional[ArticleCache] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Starlette:
    """Create the ASGI application.

    Args:
        config: Optional server configuration
        cache: Article cache to use; a fresh one by default
        client: Outbound HTTP client; created and closed by the lifespan
            when not given

    Returns:
        Configured Starlette application
    """
    if config is None:
        config = get_config()

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        owns_client = app.state.client is None
        if owns_client:
            app.state.client = create_client(config)
        logger.info(f"{config.name} rewriting feeds from {config.upstream_base_url}")
        try:
            yield
        finally:
            if owns_client:
                await app.state.client.aclose()
                app.state.client = None

    app = Starlette(
        routes=[Route("/{path:path}", serve_feed, methods=["GET"])],
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.cache = cache if cache is not None else ArticleCache()
    app.state.client = client
    return app


async def serve_feed(request: Request) -> Response:
    """Rewrite the upstream feed named by the request path."""
    state = request.app.state
    config: ServerConfig = state.config
    feed_url = f"{config.upstream_base_url}{request.url.path}"
    logger.info(f"Serving RSS: {feed_url}")

    try:
        body = await run_until_disconnect(
            request,
            rewrite_feed(
                feed_url,
                client=state.client,
                cache=state.cache,
                max_workers=config.max_workers,
                max_feed_size=config.max_feed_size,
                max_body_size=config.max_body_size,
            ),
        )
    except ClientDisconnected:
        logger.debug(f"Client disconnected, cancelled rewrite of {feed_url}")
        return Response(status_code=STATUS_CLIENT_CLOSED)
    except UpstreamFeedError as e:
        logger.error(f"error serving request: {e}")
        return Response(status_code=502)
    except Exception:
        logger.exception(f"error serving request: {feed_url}")
        return Response(status_code=500)

    return Response(content=body, media_type=RSS_MEDIA_TYPE)


async def run_until_disconnect(request: Request, work: Awaitable[Any]) -> Any:
    """Await work, cancelling it if the client disconnects first.

    Raises:
        ClientDisconnected: If the client disconnected before work finished
    """
    task = asyncio.ensure_future(work)
    watcher = asyncio.ensure_future(_wait_for_disconnect(request))
    try:
        await asyncio.wait({task, watcher}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        watcher.cancel()
        if not task.done():
            task.cancel()

    if not task.cancelled() and task.done():
        return task.result()

    # Wait for the cancelled pipeline to unwind before answering
    await asyncio.wait({task})
    raise ClientDisconnected()


async def _wait_for_disconnect(request: Request) -> None:
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


@click.command()
@click.option(
    "--bind",
    "--host",
    "host",
    default=None,
    help="Listen to requests on this interface [default: 127.0.0.1]",
)
@click.option(
    "--port",
    type=int,
    default=None,
    help="Port to listen to [default: 8080]",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML configuration file",
)
def main(host: Optional[str], port: Optional[int], log_level: Optional[str], config_path: Optional[str]) -> int:
    """Run the rss_content_fixer server."""
    config = load_config(config_path) if config_path else get_config()
    if host:
        config.host = host
    if port is not None:
        config.port = port
    if log_level:
        config.log_level = log_level.upper()

    setup_logging(config)
    app = create_app(config)

    async def run_server():
        """Inner async function to run the server and manage the event loop."""
        server = uvicorn.Server(uvicorn.Config(
            app,
            host=config.host,
            port=config.port,
            log_level=config.log_level.lower(),
        ))
        logger.info(f"Listening on {config.host}:{config.port}")
        await server.serve()

    try:
        asyncio.run(run_server())
        return 0
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
        return 0
    except Exception as e:
        logger.error(f"Failed to start server: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
