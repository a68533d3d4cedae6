"""WooCommerce REST API client."""

from profit_service.infrastructure.woocommerce.client import (
    WooCommerceClient,
    probe_connection,
    validate_credentials,
)

__all__ = ["WooCommerceClient", "probe_connection", "validate_credentials"]
