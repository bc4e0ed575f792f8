# classifieds/cli/formatting.py

"""Display helpers for prices, categories and timestamps."""

from datetime import datetime


def format_price(price: float) -> str:
    """Render a price; zero means the item is given away."""
    if price == 0:
        return "FREE"
    return f"${price:.2f}"


def format_category_name(key: str) -> str:
    """Turn a category key like ``cars_trucks`` into ``cars & trucks``."""
    return key.replace("_", " & ")


def format_timestamp(value: datetime | None) -> str:
    if value is None:
        return "N/A"
    return value.strftime("%Y-%m-%d %H:%M")
