"""Run the apitrail API server with uvicorn."""

import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from apitrail.api import create_fastapi_app
from apitrail.logging_config import get_logger, setup_logging


def main():
    """Load .env, configure logging and serve the API."""
    load_dotenv(Path(__file__).resolve().parent / ".env")
    setup_logging(console_only=os.getenv("LOG_CONSOLE_ONLY", "").lower() in ("1", "true"))
    logger = get_logger(__name__)

    api_host = os.getenv("API_HOST", "localhost")
    api_port = int(os.getenv("API_PORT", "8000"))

    app = create_fastapi_app()
    logger.info("apitrail listening on http://%s:%s", api_host, api_port)

    # Logging is already configured; keep uvicorn from replacing it
    uvicorn.run(app, host=api_host, port=api_port, log_config=None)


if __name__ == "__main__":
    main()
