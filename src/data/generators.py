"""
Synthetic Data Generator

Generates an e-commerce snapshot with the four source tables the report
reads: users, products, orders and order_items.
"""

import random
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Tuple

import numpy as np
import polars as pl
import structlog
from faker import Faker

from src.config import get_settings

logger = structlog.get_logger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

CATEGORIES = [
    ("Outerwear", ["Parka", "Rain Jacket", "Bomber", "Fleece"]),
    ("Tops", ["T-Shirt", "Polo", "Sweater", "Hoodie"]),
    ("Bottoms", ["Jeans", "Chinos", "Shorts", "Leggings"]),
    ("Accessories", ["Belt", "Scarf", "Beanie", "Sunglasses"]),
    ("Footwear", ["Sneakers", "Boots", "Sandals", "Loafers"]),
]

BRANDS = ["Northwind", "Harbor & Vale", "Kestrel", "Loom Co", "Orchard", "Tidewater"]

ORDER_STATUSES = [
    ("complete", 0.25),
    ("shipped", 0.30),
    ("processing", 0.20),
    ("cancelled", 0.15),
    ("returned", 0.10),
]

GENDERS = ["M", "F"]


# =============================================================================
# GENERATORS
# =============================================================================

class UserGenerator:
    """Generate customers with demographics"""

    def __init__(self, fake: Faker):
        self.fake = fake

    def generate(self, n: int = 1000) -> pl.DataFrame:
        """Generate n users"""
        return pl.DataFrame({
            "id": list(range(1, n + 1)),
            "first_name": [self.fake.first_name() for _ in range(n)],
            "last_name": [self.fake.last_name() for _ in range(n)],
            "gender": [random.choice(GENDERS) for _ in range(n)],
            "age": np.random.randint(12, 71, n).tolist(),
            "country": [self.fake.country() for _ in range(n)],
        })


class ProductGenerator:
    """Generate a product catalog"""

    def generate(self, n: int = 500) -> pl.DataFrame:
        """Generate n products"""
        products = []

        for product_id in range(1, n + 1):
            category, kinds = random.choice(CATEGORIES)
            brand = random.choice(BRANDS)
            retail_price = round(random.uniform(5, 250), 2)

            products.append({
                "id": product_id,
                "name": f"{brand} {random.choice(kinds)} {product_id}",
                "brand": brand,
                "category": category,
                "retail_price": retail_price,
                "cost": round(retail_price * random.uniform(0.3, 0.6), 2),
            })

        return pl.DataFrame(products)


class OrderGenerator:
    """Generate orders and their line items"""

    def __init__(
        self,
        users_df: pl.DataFrame,
        products_df: pl.DataFrame,
        fake: Faker,
    ):
        self.fake = fake
        self.user_ids = users_df["id"].to_list()
        self.product_data = products_df.select(["id", "retail_price"]).to_dicts()

    def generate(
        self,
        n: int = 5000,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Tuple[pl.DataFrame, pl.DataFrame]:
        """Generate n orders with items"""
        start_date = start_date or datetime(2019, 1, 1)
        end_date = end_date or datetime(2024, 12, 31)

        orders = []
        order_items = []
        item_id = 0

        for order_id in range(1, n + 1):
            user_id = random.choice(self.user_ids)
            created_at = self.fake.date_time_between(start_date=start_date, end_date=end_date)
            status = random.choices(
                [s[0] for s in ORDER_STATUSES],
                weights=[s[1] for s in ORDER_STATUSES],
            )[0]

            # Most orders have 1-2 items
            num_items = int(np.random.choice([1, 2, 3, 4], p=[0.55, 0.30, 0.10, 0.05]))

            for _ in range(num_items):
                item_id += 1
                product = random.choice(self.product_data)
                order_items.append({
                    "id": item_id,
                    "order_id": order_id,
                    "user_id": user_id,
                    "product_id": product["id"],
                    "status": status,
                    "created_at": created_at,
                    "sale_price": product["retail_price"],
                })

            orders.append({
                "order_id": order_id,
                "user_id": user_id,
                "status": status,
                "created_at": created_at,
                "num_of_item": num_items,
            })

        return pl.DataFrame(orders), pl.DataFrame(order_items)


# =============================================================================
# MAIN GENERATOR
# =============================================================================

class DataGenerator:
    """Main data generator orchestrator"""

    def __init__(self, output_dir: Optional[str] = None, seed: int = 42):
        self.output_dir = Path(output_dir or get_settings().data_source.source_path)

        # Seed for reproducibility
        random.seed(seed)
        np.random.seed(seed)
        Faker.seed(seed)
        self.fake = Faker()

    def generate_all(
        self,
        n_users: int = 1000,
        n_products: int = 500,
        n_orders: int = 5000,
        save: bool = True,
        file_format: str = "csv",
    ) -> Dict[str, pl.DataFrame]:
        """Generate the complete source snapshot"""
        logger.info(
            "Generating synthetic e-commerce data",
            users=n_users,
            products=n_products,
            orders=n_orders,
        )

        users_df = UserGenerator(self.fake).generate(n_users)
        products_df = ProductGenerator().generate(n_products)
        orders_df, order_items_df = OrderGenerator(users_df, products_df, self.fake).generate(n_orders)

        data = {
            "users": users_df,
            "products": products_df,
            "orders": orders_df,
            "order_items": order_items_df,
        }

        if save:
            self._save_data(data, file_format)

        logger.info("Data generation complete", order_items=order_items_df.height)
        return data

    def _save_data(self, data: Dict[str, pl.DataFrame], file_format: str) -> None:
        """Save generated tables to files"""
        self.output_dir.mkdir(parents=True, exist_ok=True)

        for name, df in data.items():
            path = self.output_dir / f"{name}.{file_format}"
            if file_format == "parquet":
                df.write_parquet(path)
            else:
                df.write_csv(path)
            logger.info("Saved generated table", table=name, rows=len(df), path=str(path))
