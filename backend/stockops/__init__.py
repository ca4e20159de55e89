"""Store operations backend: raw-material inventory, order fulfillment and purchasing."""

__version__ = "0.1.0"
