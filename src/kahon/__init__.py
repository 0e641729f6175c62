"""kahon -- cell formula engine for Kahon and Inventory sheets."""

__version__ = "0.3.0"
