"""
Unit Tests - Aggregation Passes
"""
from datetime import date, datetime

import polars as pl
import pytest

from src.analytics.exceptions import MissingColumnsError
from src.analytics.filters import excluded_status_expr, filter_qualifying, qualifying_items
from src.analytics.lifespan import (
    apply_censoring,
    average_lifespan_days,
    average_lifespan_days_by_gender,
    customer_lifespan_table,
)
from src.analytics.products import bottom_sellers, product_quantities, top_sellers
from src.analytics.purchases import (
    average_purchase_frequency,
    average_purchase_frequency_by_gender,
    average_purchase_value,
    average_purchase_value_by_gender,
    customer_purchases_table,
    purchases_per_customer,
)
from src.analytics.sales import sales_trend


class TestStatusExclusion:
    """Tests for the shared exclusion predicate"""

    def test_case_insensitive(self):
        """Test that mixed-case statuses are excluded"""
        df = pl.DataFrame({"status": ["Complete", "Cancelled", "RETURNED", "shipped"]})

        result = filter_qualifying(df)

        assert result["status"].to_list() == ["Complete", "shipped"]

    def test_null_status_is_kept(self):
        """Test that a missing status is not treated as excluded"""
        df = pl.DataFrame({"status": ["complete", None]})

        assert df.filter(excluded_status_expr())["status"].to_list() == []

    def test_custom_statuses(self):
        """Test a configured exclusion set"""
        df = pl.DataFrame({"status": ["complete", "cancelled", "processing"]})

        result = filter_qualifying(df, ["processing"])

        assert result["status"].to_list() == ["complete", "cancelled"]

    def test_empty_status_list_excludes_nothing(self):
        """Test that an explicitly empty exclusion set keeps every row"""
        df = pl.DataFrame({"status": ["complete", "cancelled"]})
        orders = pl.DataFrame({"order_id": [1, 2], "status": ["complete", "cancelled"]})
        items = df.with_columns(pl.Series("order_id", [1, 2]))

        assert filter_qualifying(df, []).height == 2
        assert qualifying_items(items, orders, []).height == 2

    def test_items_of_excluded_orders_dropped(self):
        """Test that a live line item on a cancelled order is dropped"""
        orders = pl.DataFrame({"order_id": [1, 2], "status": ["complete", "cancelled"]})
        items = pl.DataFrame({
            "order_id": [1, 2, 2],
            "status": ["complete", "complete", "cancelled"],
        })

        result = qualifying_items(items, orders)

        assert result["order_id"].to_list() == [1]

    def test_missing_status_column(self):
        """Test that a frame without status raises a clear error"""
        with pytest.raises(MissingColumnsError) as exc:
            filter_qualifying(pl.DataFrame({"order_id": [1]}), table="orders")

        assert exc.value.table == "orders"
        assert exc.value.missing == ["status"]


class TestSalesTrend:
    """Tests for the yearly sales trend"""

    def test_yearly_totals_and_pct_change(self, order_items_df, orders_df):
        """Test totals, previous year and percent change"""
        result = sales_trend(order_items_df, orders_df)

        assert result["year"].to_list() == [2022, 2023, 2024]
        assert result["total_sales"].to_list() == pytest.approx([80.0, 60.0, 75.0])
        assert result["previous_year_sales"].to_list()[1:] == pytest.approx([80.0, 60.0])
        assert result["pct_change"].to_list()[1:] == pytest.approx([-25.0, 25.0])

    def test_first_year_has_no_change(self, order_items_df, orders_df):
        """Test that the first year has no previous value or change"""
        result = sales_trend(order_items_df, orders_df)

        assert result["previous_year_sales"][0] is None
        assert result["pct_change"][0] is None

    def test_zero_previous_year_is_undefined(self):
        """Test that a zero previous year gives a null change, not an error"""
        items = pl.DataFrame({
            "order_id": [1, 2, 3],
            "sale_price": [0.0, 50.0, 100.0],
            "status": ["complete", "complete", "complete"],
            "created_at": [datetime(2021, 5, 1), datetime(2022, 5, 1), datetime(2023, 5, 1)],
        })

        result = sales_trend(items)

        assert result["pct_change"][1] is None
        assert result["pct_change"][2] == pytest.approx(100.0)

    def test_gap_year_filled_with_zero(self):
        """Test that a year without sales appears with zero and breaks the chain"""
        items = pl.DataFrame({
            "order_id": [1, 2],
            "sale_price": [100.0, 150.0],
            "status": ["complete", "complete"],
            "created_at": [datetime(2020, 1, 1), datetime(2022, 1, 1)],
        })

        result = sales_trend(items)

        assert result["year"].to_list() == [2020, 2021, 2022]
        assert result["total_sales"].to_list() == pytest.approx([100.0, 0.0, 150.0])
        assert result["pct_change"][1] == pytest.approx(-100.0)
        assert result["pct_change"][2] is None

    def test_undated_items_left_out(self):
        """Test that items without a timestamp do not enter any year"""
        items = pl.DataFrame({
            "order_id": [1, 2],
            "sale_price": [100.0, 40.0],
            "status": ["complete", "complete"],
            "created_at": [datetime(2023, 1, 1), None],
        })

        result = sales_trend(items)

        assert result["year"].to_list() == [2023]
        assert result["total_sales"].to_list() == pytest.approx([100.0])

    def test_all_items_undated(self):
        """Test that no dated items give an empty trend"""
        items = pl.DataFrame(
            {
                "order_id": [1],
                "sale_price": [100.0],
                "status": ["complete"],
                "created_at": [None],
            },
            schema_overrides={"created_at": pl.Datetime("us")},
        )

        assert sales_trend(items).height == 0

    def test_empty_input(self):
        """Test that no qualifying items give an empty trend"""
        items = pl.DataFrame({
            "order_id": [1],
            "sale_price": [10.0],
            "status": ["cancelled"],
            "created_at": [datetime(2023, 1, 1)],
        })

        result = sales_trend(items)

        assert result.height == 0
        assert result.columns == ["year", "total_sales", "previous_year_sales", "pct_change"]


class TestProductPerformance:
    """Tests for top and bottom sellers"""

    def test_top_sellers_descending(self, order_items_df, products_df, orders_df):
        """Test that top sellers are sorted by quantity descending"""
        result = top_sellers(order_items_df, products_df, orders_df)

        assert result["product_name"].to_list() == ["Alpha Jacket", "Beta Jeans", "Gamma Belt"]
        assert result["quantity_ordered"].to_list() == [3, 2, 1]

    def test_top_sellers_cap(self, order_items_df, products_df, orders_df):
        """Test top_n cap"""
        result = top_sellers(order_items_df, products_df, orders_df, top_n=2)

        assert result.height == 2

    def test_ties_broken_by_name(self):
        """Test deterministic ordering for equal quantities"""
        items = pl.DataFrame({
            "order_id": [1, 2, 3, 4],
            "product_id": [2, 1, 2, 1],
            "status": ["complete"] * 4,
        })
        products = pl.DataFrame({"id": [1, 2], "name": ["Zeta Cap", "Apex Vest"]})

        result = top_sellers(items, products)

        assert result["product_name"].to_list() == ["Apex Vest", "Zeta Cap"]

    def test_bottom_sellers_only_single_sales(self, order_items_df, products_df, orders_df):
        """Test that bottom sellers are products sold exactly once"""
        result = bottom_sellers(order_items_df, products_df, orders_df)

        assert result["product_name"].to_list() == ["Gamma Belt"]
        assert (result["quantity_ordered"] == 1).all()

    def test_unsold_products_absent(self, order_items_df, products_df, orders_df):
        """Test that products without qualifying sales never appear"""
        result = product_quantities(order_items_df, products_df, orders_df)

        assert "Delta Scarf" not in result["product_name"].to_list()


class TestPurchaseValue:
    """Tests for average purchase value"""

    def test_simple_average(self):
        """Test three single-item orders of 10, 20 and 30"""
        items = pl.DataFrame({
            "order_id": [1, 2, 3],
            "user_id": [1, 2, 3],
            "sale_price": [10.0, 20.0, 30.0],
            "status": ["complete", "complete", "complete"],
        })

        assert average_purchase_value(items) == pytest.approx(20.0)

    def test_overall_average(self, order_items_df, orders_df):
        """Test order values 80, 40, 20, 75"""
        assert average_purchase_value(order_items_df, orders_df) == pytest.approx(53.75)

    def test_no_orders(self):
        """Test that no qualifying orders give no average"""
        items = pl.DataFrame({
            "order_id": [1],
            "user_id": [1],
            "sale_price": [10.0],
            "status": ["returned"],
        })

        assert average_purchase_value(items) is None

    def test_customer_purchases_table(self, order_items_df, users_df, orders_df):
        """Test one row per order with the customer's gender"""
        result = customer_purchases_table(order_items_df, users_df, orders_df)

        assert result.columns == ["order_id", "gender", "purchase_value"]
        assert result["order_id"].to_list() == [1, 2, 3, 4]
        assert result["gender"].to_list() == ["M", "M", "F", "M"]
        assert result["purchase_value"].to_list() == pytest.approx([80.0, 40.0, 20.0, 75.0])

    def test_unresolved_user_excluded_from_segments(self, users_df):
        """Test that an order without a known user drops out of the gender view only"""
        items = pl.DataFrame({
            "order_id": [1, 2],
            "user_id": [1, 999],
            "sale_price": [10.0, 30.0],
            "status": ["complete", "complete"],
        })

        by_gender = average_purchase_value_by_gender(items, users_df)

        assert by_gender["gender"].to_list() == ["M"]
        assert average_purchase_value(items) == pytest.approx(20.0)

    def test_by_gender(self, order_items_df, users_df, orders_df):
        """Test per-gender averages"""
        result = average_purchase_value_by_gender(order_items_df, users_df, orders_df)

        assert result["gender"].to_list() == ["F", "M"]
        assert result["avg_purchase_value"].to_list() == pytest.approx([20.0, 65.0])


class TestPurchaseFrequency:
    """Tests for average purchase frequency"""

    def test_purchases_per_customer(self, order_items_df, orders_df):
        """Test distinct order counts per customer"""
        result = purchases_per_customer(order_items_df, orders_df)

        assert result["user_id"].to_list() == [1, 2, 3]
        assert result["num_of_purchases"].to_list() == [2, 1, 1]

    def test_multi_item_order_counts_once(self):
        """Test that several items on one order count as one purchase"""
        items = pl.DataFrame({
            "order_id": [1, 1, 1],
            "user_id": [7, 7, 7],
            "status": ["complete"] * 3,
        })

        assert average_purchase_frequency(items) == pytest.approx(1.0)

    def test_overall_average(self, order_items_df, orders_df):
        """Test mean across customers"""
        assert average_purchase_frequency(order_items_df, orders_df) == pytest.approx(4 / 3)

    def test_by_gender(self, order_items_df, users_df, orders_df):
        """Test per-gender averages"""
        result = average_purchase_frequency_by_gender(order_items_df, users_df, orders_df)

        assert result["gender"].to_list() == ["F", "M"]
        assert result["avg_num_of_purchases"].to_list() == pytest.approx([1.0, 1.5])


class TestCustomerLifespan:
    """Tests for customer lifespan and censoring"""

    def test_lifespan_table(self, orders_df):
        """Test inclusive day counts per customer"""
        result = customer_lifespan_table(orders_df)

        assert result.columns == [
            "user_id", "first_purchase_date", "last_purchase_date", "customer_lifespan_days",
        ]
        assert result["user_id"].to_list() == [1, 2, 3]
        assert result["first_purchase_date"].to_list() == [
            date(2022, 3, 1), date(2023, 6, 1), date(2024, 6, 1),
        ]
        assert result["customer_lifespan_days"].to_list() == [366, 1, 1]

    def test_single_day_customer_before_cutoff(self):
        """Test that a churned one-time buyer keeps lifespan 1"""
        orders = pl.DataFrame({
            "order_id": [1],
            "user_id": [1],
            "created_at": [datetime(2023, 6, 1, 9, 30)],
            "status": ["complete"],
        })

        lifespans = customer_lifespan_table(orders)

        assert lifespans["customer_lifespan_days"].to_list() == [1]
        assert average_lifespan_days(lifespans, date(2024, 1, 1)) == pytest.approx(1.0)

    def test_single_day_customer_after_cutoff_censored(self):
        """Test that a recent one-time buyer is left out of the corrected average"""
        lifespans = pl.DataFrame({
            "user_id": [1, 2],
            "first_purchase_date": [date(2024, 6, 1), date(2022, 1, 1)],
            "last_purchase_date": [date(2024, 6, 1), date(2022, 1, 10)],
            "customer_lifespan_days": [1, 10],
        })

        result = apply_censoring(lifespans, date(2024, 1, 1))

        assert result["user_id"].to_list() == [2]

    def test_cutoff_date_is_inclusive(self):
        """Test that a one-time purchase on the cutoff date is censored"""
        lifespans = pl.DataFrame({
            "user_id": [1],
            "first_purchase_date": [date(2024, 1, 1)],
            "last_purchase_date": [date(2024, 1, 1)],
            "customer_lifespan_days": [1],
        })

        assert apply_censoring(lifespans, date(2024, 1, 1)).height == 0

    def test_repeat_buyer_after_cutoff_kept(self):
        """Test that only one-time buyers are censored"""
        lifespans = pl.DataFrame({
            "user_id": [1],
            "first_purchase_date": [date(2024, 2, 1)],
            "last_purchase_date": [date(2024, 3, 1)],
            "customer_lifespan_days": [30],
        })

        assert apply_censoring(lifespans, date(2024, 1, 1)).height == 1

    def test_corrected_vs_uncorrected(self, orders_df):
        """Test that censoring changes the average"""
        lifespans = customer_lifespan_table(orders_df)

        assert average_lifespan_days(lifespans) == pytest.approx(368 / 3)
        assert average_lifespan_days(lifespans, date(2024, 1, 1)) == pytest.approx(183.5)

    def test_everyone_censored(self):
        """Test that no observable customers give no average"""
        lifespans = pl.DataFrame({
            "user_id": [1],
            "first_purchase_date": [date(2024, 6, 1)],
            "last_purchase_date": [date(2024, 6, 1)],
            "customer_lifespan_days": [1],
        })

        assert average_lifespan_days(lifespans, date(2024, 1, 1)) is None

    def test_by_gender_uses_same_offset(self, orders_df, users_df):
        """Test per-gender averages with the inclusive day count"""
        lifespans = customer_lifespan_table(orders_df)

        result = average_lifespan_days_by_gender(lifespans, users_df, date(2024, 1, 1))

        assert result["gender"].to_list() == ["F", "M"]
        assert result["avg_customer_lifespan_days"].to_list() == pytest.approx([1.0, 366.0])

    def test_excluded_orders_do_not_extend_lifespan(self):
        """Test that a cancelled order outside the active window is ignored"""
        orders = pl.DataFrame({
            "order_id": [1, 2],
            "user_id": [1, 1],
            "created_at": [datetime(2023, 1, 1), datetime(2023, 12, 31)],
            "status": ["complete", "cancelled"],
        })

        result = customer_lifespan_table(orders)

        assert result["customer_lifespan_days"].to_list() == [1]


class TestMissingGender:
    """Tests for users without a recorded gender"""

    def test_purchase_value(self, mixed_order_items_df, mixed_users_df, mixed_orders_df):
        """Test that the user counts overall but in no gender segment"""
        overall = average_purchase_value(mixed_order_items_df, mixed_orders_df)
        by_gender = average_purchase_value_by_gender(mixed_order_items_df, mixed_users_df, mixed_orders_df)

        assert overall == pytest.approx(50.0)
        assert by_gender["gender"].to_list() == ["F", "M"]
        assert by_gender["avg_purchase_value"].to_list() == pytest.approx([30.0, 60.0])

    def test_customer_purchases_table(self, mixed_order_items_df, mixed_users_df, mixed_orders_df):
        """Test that orders of the user are absent from the derived table"""
        result = customer_purchases_table(mixed_order_items_df, mixed_users_df, mixed_orders_df)

        assert result["order_id"].to_list() == [1, 3, 4]
        assert result["gender"].null_count() == 0

    def test_purchase_frequency(self, mixed_order_items_df, mixed_users_df, mixed_orders_df):
        """Test frequency overall and per gender"""
        overall = average_purchase_frequency(mixed_order_items_df, mixed_orders_df)
        by_gender = average_purchase_frequency_by_gender(
            mixed_order_items_df, mixed_users_df, mixed_orders_df
        )

        assert overall == pytest.approx(4 / 3)
        assert by_gender["avg_num_of_purchases"].to_list() == pytest.approx([1.0, 2.0])

    def test_lifespan(self, mixed_orders_df, mixed_users_df):
        """Test lifespan overall and per gender"""
        lifespans = customer_lifespan_table(mixed_orders_df)

        by_gender = average_lifespan_days_by_gender(lifespans, mixed_users_df, date(2024, 1, 1))

        assert average_lifespan_days(lifespans, date(2024, 1, 1)) == pytest.approx(31.0)
        assert by_gender["gender"].to_list() == ["F", "M"]
        assert by_gender["avg_customer_lifespan_days"].to_list() == pytest.approx([1.0, 91.0])

    def test_bottom_sellers_ordered_by_name(self, mixed_order_items_df, mixed_products_df, mixed_orders_df):
        """Test several single-sale products in name order"""
        result = bottom_sellers(mixed_order_items_df, mixed_products_df, mixed_orders_df)

        assert result["product_name"].to_list() == ["Birch Sock", "Crest Hat"]
        assert result["quantity_ordered"].to_list() == [1, 1]
