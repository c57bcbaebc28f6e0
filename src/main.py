"""
Batch Entrypoint

Loads the source tables, cleans them, runs the insights report and logs the
summary. All inputs come from settings and the environment.
"""

import sys

import structlog

from src.analytics.exceptions import InsightsError
from src.analytics.report import InsightsReport, ReportResult
from src.config import get_settings
from src.config.logging import configure_logging
from src.ingestion.batch_loader import SourceLoader
from src.transformation.cleaners import DataCleaner

logger = structlog.get_logger(__name__)


def run_report() -> ReportResult:
    """Load, clean and report using the configured paths"""
    settings = get_settings()

    tables = SourceLoader().load_all()
    tables = DataCleaner().clean_sources(tables)

    return InsightsReport(settings=settings).run(tables)


def main() -> int:
    configure_logging()
    settings = get_settings()

    logger.info("Starting E-Commerce Insights Report", version=settings.version, environment=settings.app_env)

    try:
        result = run_report()
    except InsightsError as e:
        logger.error("Insights report failed", error=str(e))
        return 1

    logger.info("Report summary", **result.summary())
    return 0


if __name__ == "__main__":
    sys.exit(main())
