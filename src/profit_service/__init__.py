"""Storefront profit service: WooCommerce sync and cost attribution."""

__version__ = "1.0.0"
