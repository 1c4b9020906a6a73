"""Main entry point for the price hunter service."""

import asyncio
import json
import os
import threading
from typing import Optional

from dotenv import load_dotenv
load_dotenv()  # Load .env into environment variables

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.agents.pipeline import SearchPipeline, create_pipeline
from src.api.middleware import RequestLoggingMiddleware
from src.api.routes.search import build_search_request, router as search_router
from src.config.settings import settings
from src.errors import InvalidRequest
from src.logging import configure_logging

configure_logging()

logger = structlog.get_logger()


def create_app(pipeline: Optional[SearchPipeline] = None) -> FastAPI:
    """Build the API app around one pipeline instance."""
    app = FastAPI(title="Price Hunter API")
    app.state.pipeline = pipeline or create_pipeline(settings)

    app.add_middleware(RequestLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(search_router)
    return app


app = create_app()


def run_api_server():
    """Run the FastAPI server in a separate thread."""
    port = int(os.environ.get("PORT", settings.api_port))
    config = uvicorn.Config(app, host=settings.api_host, port=port, log_level="warning")
    server = uvicorn.Server(config)
    server.run()


async def interactive_mode(pipeline: SearchPipeline):
    """Run searches typed on stdin (``<query> [budget]``)."""
    logger.info("Starting interactive mode")

    print("\n" + "=" * 60)
    print("  PRICE HUNTER")
    print("=" * 60)
    print("\nAPI: http://localhost:8000/api/search?q=...")
    print("\nCommands:")
    print("  <query> [budget] - Search (e.g. 'oled 65 4000')")
    print("  quit             - Exit")
    print()

    while True:
        try:
            user_input = (await asyncio.to_thread(input, "\n> ")).strip()

            if not user_input:
                continue

            if user_input.lower() == "quit":
                print("Goodbye!")
                break

            words = user_input.split()
            budget = words.pop() if len(words) > 1 and words[-1].replace(".", "").isdigit() else None
            request = build_search_request(" ".join(words), budget=budget)
            result = await pipeline.search(request)

            for i, item in enumerate(result.top, 1):
                price = f"{item.price_ron:.0f} lei" if item.price_ron is not None else "?"
                print(f"{i:2}. [{item.overall_score:.0f}/{item.value_score:.0f} fit {item.hard_fit:+.0f}] {price:>10}  {item.title}")
                print(f"    {item.link}")
            print(json.dumps({k: v.ok for k, v in result.sources.items()}))
            if result.recommendation:
                print(f"\n{result.recommendation}")

        except KeyboardInterrupt:
            print("\nGoodbye!")
            break
        except InvalidRequest as e:
            print(f"Error: {e}")


async def main():
    """Main entry point."""
    # In production, just run uvicorn directly (no interactive mode)
    if settings.environment == "production":
        port = int(os.environ.get("PORT", settings.api_port))
        logger.info("Starting production server", port=port)
        config = uvicorn.Config(app, host=settings.api_host, port=port, log_level="info")
        server = uvicorn.Server(config)
        await server.serve()
        return

    # Development: Start API server in background thread + interactive mode
    api_thread = threading.Thread(target=run_api_server, daemon=True)
    api_thread.start()
    logger.info("API server started", url=f"http://localhost:{settings.api_port}")

    await interactive_mode(app.state.pipeline)


def cli():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    cli()
