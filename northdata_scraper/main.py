"""
Main entry point for the Northdata scraper.
"""

import sys

from pydantic import ValidationError

from northdata_scraper.errors import ConfigError
from northdata_scraper.utils.config import get_settings
from northdata_scraper.utils.dotenv import load_dotenv_if_present
from northdata_scraper.utils.logging import configure_logging, get_logger


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Loads .env and settings, validates credentials, then serves the API
    until uvicorn receives a shutdown signal.

    Returns:
        Process exit code.
    """
    import argparse

    import uvicorn

    from northdata_scraper.api.server import create_app

    parser = argparse.ArgumentParser(
        description="Northdata Scraper - browser-backed northdata.de API"
    )
    parser.add_argument("--host", type=str, help="Bind address (overrides server.host)")
    parser.add_argument("--port", type=int, help="Bind port (overrides server.port)")
    args = parser.parse_args(argv)

    load_dotenv_if_present()
    logger = get_logger(__name__)

    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logging()
        logger.error("Invalid configuration", error=str(e))
        return 1

    configure_logging(
        log_level=settings.general.log_level,
        log_file=settings.general.log_file,
        json_format=settings.general.log_json,
    )

    try:
        settings.validate_credentials()
    except ConfigError as e:
        logger.error("Configuration error", error=e.message, code=e.code.value)
        return 1

    host = args.host or settings.server.host
    port = args.port or settings.server.port

    logger.info(
        "Northdata scraper starting",
        host=host,
        port=port,
        headless=settings.browser.headless,
        log_level=settings.general.log_level,
    )

    uvicorn.run(create_app(settings=settings), host=host, port=port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
