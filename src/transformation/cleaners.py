"""
Data Cleaning Module

Standardizes raw source tables before aggregation.
Handles:
- Whitespace trimming
- Status normalization
- Timestamp parsing
- Deduplication
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import polars as pl
import structlog

from src.ingestion.batch_loader import SourceTables

logger = structlog.get_logger(__name__)

UTC_SUFFIX = r"\s*(UTC|Z)$"


@dataclass
class CleaningStats:
    """Statistics from cleaning one table"""
    table: str
    total_rows: int
    rows_after_cleaning: int
    duplicates_removed: int


class DataCleaner:
    """
    Source table cleaner.

    Example:
        cleaner = DataCleaner()
        tables = cleaner.clean_sources(tables)
    """

    def __init__(self):
        self.stats: List[CleaningStats] = []
        self._table_rules: Dict[str, Callable[[pl.DataFrame], pl.DataFrame]] = {
            "orders": self.clean_orders,
            "order_items": self.clean_order_items,
            "products": self.clean_products,
            "users": self.clean_users,
        }

    def _trim_strings(self, df: pl.DataFrame, columns: Optional[List[str]] = None) -> pl.DataFrame:
        """Trim whitespace from string columns"""
        string_cols = columns or [
            col for col, dtype in zip(df.columns, df.dtypes)
            if dtype == pl.Utf8
        ]

        for col in string_cols:
            if col in df.columns:
                df = df.with_columns(
                    pl.col(col).str.strip_chars().alias(col)
                )

        return df

    def _normalize_case(
        self,
        df: pl.DataFrame,
        columns: List[str],
        case: str = "lower"
    ) -> pl.DataFrame:
        """Normalize string case"""
        for col in columns:
            if col in df.columns and df.schema[col] == pl.Utf8:
                if case == "lower":
                    df = df.with_columns(pl.col(col).str.to_lowercase().alias(col))
                elif case == "upper":
                    df = df.with_columns(pl.col(col).str.to_uppercase().alias(col))

        return df

    def _remove_duplicates(
        self,
        df: pl.DataFrame,
        subset: Optional[List[str]] = None,
        keep: str = "first"
    ) -> pl.DataFrame:
        """Remove duplicate rows, preserving input order"""
        if subset:
            return df.unique(subset=subset, keep=keep, maintain_order=True)
        return df.unique(maintain_order=True)

    def _standardize_dates(
        self,
        df: pl.DataFrame,
        date_columns: List[str],
        format: Optional[str] = None,
    ) -> pl.DataFrame:
        """
        Parse string timestamp columns into naive datetimes.

        A trailing UTC marker is stripped first. With no format given the
        format is inferred from the data.
        """
        for col in date_columns:
            if col not in df.columns or df.schema[col] != pl.Utf8:
                continue

            df = df.with_columns(
                pl.col(col)
                .str.replace(UTC_SUFFIX, "")
                .str.to_datetime(format=format, strict=False)
                .alias(col)
            )

        for col in date_columns:
            dtype = df.schema.get(col)
            if isinstance(dtype, pl.Datetime) and dtype.time_zone:
                df = df.with_columns(pl.col(col).dt.replace_time_zone(None).alias(col))

        return df

    def _normalize_currency(
        self,
        df: pl.DataFrame,
        amount_columns: List[str]
    ) -> pl.DataFrame:
        """Normalize currency values (remove symbols, convert to float)"""
        for col in amount_columns:
            if col in df.columns and df.schema[col] == pl.Utf8:
                df = df.with_columns(
                    pl.col(col)
                    .str.replace_all(r"[$€£¥,]", "")
                    .str.strip_chars()
                    .cast(pl.Float64)
                    .alias(col)
                )
            elif col in df.columns:
                df = df.with_columns(pl.col(col).cast(pl.Float64).alias(col))

        return df

    def clean_orders(self, df: pl.DataFrame) -> pl.DataFrame:
        """Apply order-specific cleaning transformations"""
        df = self._trim_strings(df)
        df = self._normalize_case(df, ["status"])
        df = self._standardize_dates(df, ["created_at"])

        if "order_id" in df.columns:
            df = self._remove_duplicates(df, subset=["order_id"])

        return df

    def clean_order_items(self, df: pl.DataFrame) -> pl.DataFrame:
        """Apply line-item cleaning transformations"""
        df = self._trim_strings(df)
        df = self._normalize_case(df, ["status"])
        df = self._standardize_dates(df, ["created_at"])
        df = self._normalize_currency(df, ["sale_price"])

        if "id" in df.columns:
            df = self._remove_duplicates(df, subset=["id"])

        return df

    def clean_products(self, df: pl.DataFrame) -> pl.DataFrame:
        """Apply product-specific cleaning transformations"""
        df = self._trim_strings(df)

        if "id" in df.columns:
            df = self._remove_duplicates(df, subset=["id"])

        return df

    def clean_users(self, df: pl.DataFrame) -> pl.DataFrame:
        """Apply user-specific cleaning transformations"""
        df = self._trim_strings(df)
        df = self._normalize_case(df, ["gender"], "upper")

        if "id" in df.columns:
            df = self._remove_duplicates(df, subset=["id"])

        return df

    def clean_table(self, name: str, df: pl.DataFrame) -> pl.DataFrame:
        """Clean one source table by name"""
        rule = self._table_rules.get(name)
        if rule is None:
            raise ValueError(f"Unknown source table: {name}")

        total_rows = df.height
        cleaned = rule(df)

        stats = CleaningStats(
            table=name,
            total_rows=total_rows,
            rows_after_cleaning=cleaned.height,
            duplicates_removed=total_rows - cleaned.height,
        )
        self.stats.append(stats)

        if stats.duplicates_removed:
            logger.warning(
                "Duplicate source rows removed",
                table=name,
                duplicates_removed=stats.duplicates_removed,
            )

        return cleaned

    def clean_sources(self, tables: SourceTables) -> SourceTables:
        """Clean every source table"""
        self.stats = []
        cleaned = {name: self.clean_table(name, df) for name, df in tables.as_dict().items()}
        logger.info("Source tables cleaned", rows={s.table: s.rows_after_cleaning for s in self.stats})
        return SourceTables(**cleaned)


def clean_dataframe(
    df: pl.DataFrame,
    data_type: str = "generic"
) -> pl.DataFrame:
    """
    Convenience function to clean a DataFrame.

    Args:
        df: Input DataFrame
        data_type: "orders", "order_items", "products", "users" or "generic"

    Returns:
        Cleaned DataFrame
    """
    cleaner = DataCleaner()

    if data_type == "generic":
        df = cleaner._trim_strings(df)
        return cleaner._remove_duplicates(df)

    return cleaner.clean_table(data_type, df)
