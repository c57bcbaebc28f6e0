"""
E-Commerce Dataset Generator
Writes users, products, orders and order_items to the configured source path.
"""

from src.config.logging import configure_logging
from src.data.generators import DataGenerator


def main():
    configure_logging(log_format="console")
    DataGenerator().generate_all(n_users=10000, n_products=2000, n_orders=50000)


if __name__ == "__main__":
    main()
