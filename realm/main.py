"""
Realm server entry point.

``uvicorn realm.main:app`` serves the API; logging is configured before the
app is built so factory messages reach the log files.
"""

from .app.factory import create_app
from .config import get_config
from .structured_logging.enhanced_logging_config import get_logger, setup_enhanced_logging

config = get_config()
setup_enhanced_logging(config.to_dict())

logger = get_logger(__name__)
logger.info("Logging setup completed", environment=config.logging.environment)

app = create_app()


def main() -> None:
    """Run the server with the configured host and port."""
    import uvicorn  # pylint: disable=import-outside-toplevel

    uvicorn.run("realm.main:app", host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
