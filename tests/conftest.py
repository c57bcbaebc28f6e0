"""
Test Suite Configuration

The shared snapshot is small enough to check every figure by hand:

    qualifying orders      1 (user 1, M)  2022-03-01  items 50 + 30
                           2 (user 1, M)  2023-03-01  item  40
                           3 (user 2, F)  2023-06-01  item  20 (+10 returned line)
                           4 (user 3, M)  2024-06-01  items 60 + 15
    excluded orders        5 (user 2) cancelled, 6 (user 3) returned
"""
from datetime import date, datetime

import polars as pl
import pytest

from src.config import AnalysisSettings, DataSourceSettings, Settings
from src.ingestion.batch_loader import SourceTables


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Create test settings writing derived tables under tmp_path"""
    return Settings(
        data_source=DataSourceSettings(
            source_path=str(tmp_path / "raw"),
            output_path=str(tmp_path / "curated"),
        ),
        analysis=AnalysisSettings(
            censoring_cutoff=date(2024, 1, 1),
            top_n=10,
        ),
    )


@pytest.fixture
def users_df() -> pl.DataFrame:
    return pl.DataFrame({
        "id": [1, 2, 3, 4],
        "gender": ["M", "F", "M", "F"],
        "age": [34, 28, 45, 52],
    })


@pytest.fixture
def products_df() -> pl.DataFrame:
    return pl.DataFrame({
        "id": [10, 11, 12, 13],
        "name": ["Alpha Jacket", "Beta Jeans", "Gamma Belt", "Delta Scarf"],
    })


@pytest.fixture
def orders_df() -> pl.DataFrame:
    return pl.DataFrame({
        "order_id": [1, 2, 3, 4, 5, 6],
        "user_id": [1, 1, 2, 3, 2, 3],
        "created_at": [
            datetime(2022, 3, 1, 10, 0),
            datetime(2023, 3, 1, 9, 0),
            datetime(2023, 6, 1, 12, 0),
            datetime(2024, 6, 1, 8, 0),
            datetime(2023, 7, 1, 15, 0),
            datetime(2022, 1, 15, 11, 0),
        ],
        "status": ["complete", "shipped", "complete", "complete", "cancelled", "returned"],
    })


@pytest.fixture
def order_items_df() -> pl.DataFrame:
    return pl.DataFrame({
        "id": [1, 2, 3, 4, 5, 6, 7, 8, 9],
        "order_id": [1, 1, 2, 3, 3, 4, 5, 6, 4],
        "user_id": [1, 1, 1, 2, 2, 3, 2, 3, 3],
        "product_id": [10, 11, 10, 10, 12, 11, 12, 10, 12],
        "sale_price": [50.0, 30.0, 40.0, 20.0, 10.0, 60.0, 99.0, 77.0, 15.0],
        "status": [
            "complete", "complete", "shipped", "complete", "returned",
            "complete", "cancelled", "returned", "complete",
        ],
        "created_at": [
            datetime(2022, 3, 1, 10, 0),
            datetime(2022, 3, 1, 10, 0),
            datetime(2023, 3, 1, 9, 0),
            datetime(2023, 6, 1, 12, 0),
            datetime(2023, 6, 1, 12, 0),
            datetime(2024, 6, 1, 8, 0),
            datetime(2023, 7, 1, 15, 0),
            datetime(2022, 1, 15, 11, 0),
            datetime(2024, 6, 1, 8, 0),
        ],
    })


@pytest.fixture
def source_tables(orders_df, order_items_df, products_df, users_df) -> SourceTables:
    return SourceTables(
        orders=orders_df,
        order_items=order_items_df,
        products=products_df,
        users=users_df,
    )


@pytest.fixture
def qualifying_source_tables(source_tables) -> SourceTables:
    """The shared snapshot with every cancelled and returned row removed"""
    excluded = ["cancelled", "returned"]
    return SourceTables(
        orders=source_tables.orders.filter(~pl.col("status").is_in(excluded)),
        order_items=source_tables.order_items.filter(~pl.col("status").is_in(excluded)),
        products=source_tables.products,
        users=source_tables.users,
    )


@pytest.fixture
def mixed_users_df() -> pl.DataFrame:
    """Users where user 2 has no recorded gender"""
    return pl.DataFrame({
        "id": [1, 2, 3],
        "gender": ["M", None, "F"],
    })


@pytest.fixture
def mixed_products_df() -> pl.DataFrame:
    return pl.DataFrame({
        "id": [20, 21, 22],
        "name": ["Crest Hat", "Birch Sock", "Aspen Coat"],
    })


@pytest.fixture
def mixed_orders_df() -> pl.DataFrame:
    return pl.DataFrame({
        "order_id": [1, 2, 3, 4],
        "user_id": [1, 2, 3, 1],
        "created_at": [
            datetime(2023, 1, 1, 9, 0),
            datetime(2023, 2, 1, 9, 0),
            datetime(2023, 3, 1, 9, 0),
            datetime(2023, 4, 1, 9, 0),
        ],
        "status": ["complete"] * 4,
    })


@pytest.fixture
def mixed_order_items_df() -> pl.DataFrame:
    """Aspen Coat sells twice, Birch Sock and Crest Hat once each"""
    return pl.DataFrame({
        "id": [1, 2, 3, 4],
        "order_id": [1, 2, 3, 4],
        "user_id": [1, 2, 3, 1],
        "product_id": [22, 21, 22, 20],
        "sale_price": [100.0, 50.0, 30.0, 20.0],
        "status": ["complete"] * 4,
        "created_at": [
            datetime(2023, 1, 1, 9, 0),
            datetime(2023, 2, 1, 9, 0),
            datetime(2023, 3, 1, 9, 0),
            datetime(2023, 4, 1, 9, 0),
        ],
    })
