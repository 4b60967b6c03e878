"""Command-line entrypoint that serves the API with uvicorn."""

import uvicorn

from site_cloner.config import Settings


def main() -> None:
    """Run the ASGI app on the configured host and port."""
    settings = Settings()
    print(
        "Website Cloner backend\n"
        f"  Stream endpoint: GET http://localhost:{settings.port}"
        "/api/clone-stream?url=<website-url>\n"
        f"  Health check: GET http://localhost:{settings.port}/api/health"
    )
    uvicorn.run(
        "site_cloner.api.asgi:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
