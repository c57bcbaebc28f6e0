"""
Insights Report

Runs every aggregation pass over a snapshot of the source tables, writes the
two derived tables for the visualization layer and returns all figures.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import polars as pl
import structlog

from src.analytics.cltv import (
    CLTVBreakdown,
    OVERALL_SEGMENT,
    breakdowns_to_frame,
    compose_cltv,
    compose_segment_cltv,
)
from src.analytics.exceptions import SourceValidationError
from src.analytics.lifespan import (
    average_lifespan_days,
    average_lifespan_days_by_gender,
    customer_lifespan_table,
)
from src.analytics.products import bottom_sellers, top_sellers
from src.analytics.purchases import (
    average_purchase_frequency,
    average_purchase_frequency_by_gender,
    average_purchase_value,
    average_purchase_value_by_gender,
    customer_purchases_table,
)
from src.analytics.sales import sales_trend
from src.config import Settings, get_settings
from src.quality.validators import ValidationResult, validate_sources

if TYPE_CHECKING:
    from src.ingestion.batch_loader import SourceTables

logger = structlog.get_logger(__name__)

LIFESPAN_TABLE = "customer_lifespan_table"
PURCHASES_TABLE = "customer_purchases_table"


@dataclass
class ReportResult:
    """Every figure and table produced by one report run"""
    sales_trend: pl.DataFrame
    top_sellers: pl.DataFrame
    bottom_sellers: pl.DataFrame
    customer_lifespan_table: pl.DataFrame
    customer_purchases_table: pl.DataFrame
    avg_purchase_value: Optional[float]
    avg_purchase_value_by_gender: pl.DataFrame
    avg_num_of_purchases: Optional[float]
    avg_num_of_purchases_by_gender: pl.DataFrame
    avg_customer_lifespan_days: Optional[float]
    avg_customer_lifespan_days_uncorrected: Optional[float]
    avg_customer_lifespan_days_by_gender: pl.DataFrame
    cltv: CLTVBreakdown
    cltv_by_gender: List[CLTVBreakdown]
    started_at: datetime
    completed_at: datetime
    output_paths: Dict[str, str] = field(default_factory=dict)
    validation: Dict[str, ValidationResult] = field(default_factory=dict)

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def cltv_table(self) -> pl.DataFrame:
        """Overall and per-gender CLTV breakdowns, one row per segment"""
        return breakdowns_to_frame([self.cltv] + self.cltv_by_gender)

    def summary(self) -> Dict[str, Any]:
        """JSON-serializable scalar figures"""
        return {
            "avg_purchase_value": self.avg_purchase_value,
            "avg_num_of_purchases": self.avg_num_of_purchases,
            "avg_customer_lifespan_days": self.avg_customer_lifespan_days,
            "avg_customer_lifespan_days_uncorrected": self.avg_customer_lifespan_days_uncorrected,
            "cltv": self.cltv.to_dict(),
            "cltv_by_gender": [b.to_dict() for b in self.cltv_by_gender],
            "sales_trend": self.sales_trend.to_dicts(),
            "top_sellers": self.top_sellers.to_dicts(),
            "bottom_seller_count": self.bottom_sellers.height,
            "output_paths": self.output_paths,
            "duration_seconds": self.duration_seconds,
        }


class InsightsReport:
    """
    Business insights report over the e-commerce source tables.

    Example:
        report = InsightsReport()
        result = report.run(SourceLoader().load_all())
        print(result.cltv.cltv)
    """

    def __init__(
        self,
        output_path: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.analysis = self.settings.analysis
        self.output_path = Path(output_path or self.settings.data_source.output_path)
        self.output_format = self.settings.data_source.output_format

    def _write_output(self, df: pl.DataFrame, name: str) -> str:
        """Write a derived table, replacing any previous run's artifact"""
        self.output_path.mkdir(parents=True, exist_ok=True)
        output_file = self.output_path / f"{name}.{self.output_format}"

        if self.output_format == "csv":
            df.write_csv(output_file)
        else:
            df.write_parquet(output_file)

        logger.info("Derived table written", table=name, rows=len(df), path=str(output_file))
        return str(output_file)

    def validate(self, tables: "SourceTables") -> Dict[str, ValidationResult]:
        """
        Run source data quality checks.

        Raises:
            SourceValidationError: If any error-severity check failed
        """
        results = validate_sources(tables)
        if any(r.failed_checks > 0 for r in results.values()):
            raise SourceValidationError(results)
        return results

    def run(self, tables: "SourceTables", write_outputs: bool = True) -> ReportResult:
        """
        Run every aggregation pass.

        Args:
            tables: Cleaned source tables
            write_outputs: Materialize the derived tables to output_path

        Returns:
            ReportResult with every figure and table
        """
        started_at = datetime.utcnow()
        excluded = self.analysis.excluded_statuses
        cutoff = self.analysis.censoring_cutoff
        days_per_year = self.analysis.days_per_year

        logger.info(
            "Starting insights report",
            rows=tables.row_counts,
            excluded_statuses=excluded,
            censoring_cutoff=str(cutoff),
        )

        validation = self.validate(tables) if self.analysis.enable_validation else {}

        orders, items, users = tables.orders, tables.order_items, tables.users

        trend = sales_trend(items, orders, excluded)
        top = top_sellers(items, tables.products, orders, self.analysis.top_n, excluded)
        bottom = bottom_sellers(items, tables.products, orders, excluded)

        purchases = customer_purchases_table(items, users, orders, excluded)
        avg_value = average_purchase_value(items, orders, excluded)
        value_by_gender = average_purchase_value_by_gender(items, users, orders, excluded, purchases=purchases)

        avg_frequency = average_purchase_frequency(items, orders, excluded)
        frequency_by_gender = average_purchase_frequency_by_gender(items, users, orders, excluded)

        lifespans = customer_lifespan_table(orders, excluded)
        avg_lifespan_uncorrected = average_lifespan_days(lifespans)
        avg_lifespan = average_lifespan_days(lifespans, cutoff)
        lifespan_by_gender = average_lifespan_days_by_gender(lifespans, users, cutoff)

        overall = compose_cltv(
            avg_value,
            avg_frequency,
            avg_lifespan,
            segment=OVERALL_SEGMENT,
            days_per_year=days_per_year,
        )
        by_gender = compose_segment_cltv(
            value_by_gender,
            frequency_by_gender,
            lifespan_by_gender,
            days_per_year=days_per_year,
        )

        output_paths = {}
        if write_outputs:
            output_paths[LIFESPAN_TABLE] = self._write_output(lifespans, LIFESPAN_TABLE)
            output_paths[PURCHASES_TABLE] = self._write_output(purchases, PURCHASES_TABLE)

        result = ReportResult(
            sales_trend=trend,
            top_sellers=top,
            bottom_sellers=bottom,
            customer_lifespan_table=lifespans,
            customer_purchases_table=purchases,
            avg_purchase_value=avg_value,
            avg_purchase_value_by_gender=value_by_gender,
            avg_num_of_purchases=avg_frequency,
            avg_num_of_purchases_by_gender=frequency_by_gender,
            avg_customer_lifespan_days=avg_lifespan,
            avg_customer_lifespan_days_uncorrected=avg_lifespan_uncorrected,
            avg_customer_lifespan_days_by_gender=lifespan_by_gender,
            cltv=overall,
            cltv_by_gender=by_gender,
            started_at=started_at,
            completed_at=datetime.utcnow(),
            output_paths=output_paths,
            validation=validation,
        )

        logger.info(
            "Insights report complete",
            cltv=overall.cltv,
            segments=[b.segment for b in by_gender],
            duration_seconds=result.duration_seconds,
        )

        return result
