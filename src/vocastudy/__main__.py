"""Main entry point for the study bot."""
import logging

from vocastudy.app import VocaStudyBot
from vocastudy.config import ensure_directories, settings
from vocastudy.logging_config import setup_logging
from vocastudy.monitoring import start_monitoring

logger = logging.getLogger(__name__)


def main() -> None:
    ensure_directories()
    setup_logging("Starting vocastudy ...")

    if settings.monitoring.enabled:
        start_monitoring(settings.monitoring.port)
        logger.info(f"Metrics exposed on port {settings.monitoring.port}")

    VocaStudyBot().run()


if __name__ == "__main__":
    main()
