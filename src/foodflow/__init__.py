"""FOODFLOW: order lifecycle client for a food-delivery marketplace."""

__version__ = "0.4.0"
