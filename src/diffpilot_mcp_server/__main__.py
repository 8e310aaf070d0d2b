"""Entry point for DiffPilot MCP Server."""

from .config import Settings
from .logging import get_logger, setup_logging
from .server import create_server

logger = get_logger(__name__)


def main():
    """Run the MCP server."""
    settings = Settings()
    setup_logging(settings.log_level)
    settings.validate_required()

    logger.info("DiffPilot MCP Server starting", working_dir=str(settings.working_dir))
    server = create_server(settings)
    server.run(transport="stdio")


if __name__ == "__main__":
    main()
