"""Command line entrypoint that serves the API."""

import uvicorn

from delorean.api.app import create_app
from delorean.config import Settings
from delorean.containers import build_container


def main() -> None:
    """Run the API server on the configured host and port."""
    settings = Settings()
    app = create_app(build_container(settings))
    print(f"DeLorean server listening on http://localhost:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
