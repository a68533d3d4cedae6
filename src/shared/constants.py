"""Shared constants across the application."""

# Order statuses that count towards revenue in profit summaries
REVENUE_STATUSES = ["completed", "processing", "on-hold"]

# Remote API
WOOCOMMERCE_API_PATH = "/wp-json/wc/v3"
REMOTE_PAGE_SIZE = 50

# Default limits
DEFAULT_REPORT_LIMIT = 100
MAX_REPORT_LIMIT = 1000
DEFAULT_SYNC_RUNS_LIMIT = 20

# Default currency for websites created without one
DEFAULT_CURRENCY = "USD"

CSV_HEADER = [
    "Order Number",
    "Date",
    "Website",
    "Product",
    "SKU",
    "Country",
    "Quantity",
    "Revenue",
    "Cost",
    "Profit",
    "Margin %",
    "Currency",
]
