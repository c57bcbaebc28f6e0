"""
Data Generation Module
"""
from .generators import DataGenerator, OrderGenerator, ProductGenerator, UserGenerator

__all__ = [
    "DataGenerator",
    "OrderGenerator",
    "ProductGenerator",
    "UserGenerator",
]
