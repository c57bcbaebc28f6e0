"""
Status Exclusion

Cancelled and returned orders and line items carry no revenue. Every
aggregation pass filters through the helpers here so the rule is applied
the same way everywhere.
"""

from typing import Iterable, Optional, Sequence

import polars as pl

from src.analytics.exceptions import MissingColumnsError

DEFAULT_EXCLUDED_STATUSES = ("cancelled", "returned")


def require_columns(df: pl.DataFrame, columns: Iterable[str], table: str) -> None:
    """Raise MissingColumnsError if any of columns is absent from df"""
    missing = set(columns) - set(df.columns)
    if missing:
        raise MissingColumnsError(table, missing)


def excluded_status_expr(
    statuses: Optional[Sequence[str]] = None,
    column: str = "status",
) -> pl.Expr:
    """
    Expression that is True for rows whose status is excluded.

    Comparison is case-insensitive. Null statuses are not excluded. An empty
    statuses list excludes nothing.
    """
    if statuses is None:
        statuses = DEFAULT_EXCLUDED_STATUSES
    if not statuses:
        return pl.lit(False)
    statuses = [s.lower() for s in statuses]
    return pl.col(column).cast(pl.Utf8).str.to_lowercase().is_in(statuses).fill_null(False)


def filter_qualifying(
    df: pl.DataFrame,
    statuses: Optional[Sequence[str]] = None,
    table: str = "table",
) -> pl.DataFrame:
    """Drop rows with an excluded status"""
    require_columns(df, ["status"], table)
    return df.filter(~excluded_status_expr(statuses))


def qualifying_items(
    order_items: pl.DataFrame,
    orders: Optional[pl.DataFrame] = None,
    statuses: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    """
    Line items that count toward revenue.

    Items are dropped when their own status is excluded. When orders are
    given, items whose parent order is excluded are dropped as well.
    """
    items = filter_qualifying(order_items, statuses, table="order_items")

    if orders is not None:
        require_columns(orders, ["order_id", "status"], "orders")
        excluded_orders = orders.filter(excluded_status_expr(statuses)).select("order_id")
        if excluded_orders.height > 0:
            items = items.join(excluded_orders, on="order_id", how="anti")

    return items
