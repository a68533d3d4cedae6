"""Business logic services."""

from profit_service.services.catalog_reconciler import CatalogReconciler
from profit_service.services.cost_ledger import CostLedger
from profit_service.services.order_reconciler import OrderReconciler
from profit_service.services.reporting import ProfitReportService
from profit_service.services.sync_orchestrator import (
    SyncErrorKind,
    SyncOrchestrator,
    SyncOutcome,
)
from profit_service.services.sync_tracker import SyncRunTracker

__all__ = [
    "CatalogReconciler",
    "CostLedger",
    "OrderReconciler",
    "ProfitReportService",
    "SyncErrorKind",
    "SyncOrchestrator",
    "SyncOutcome",
    "SyncRunTracker",
]
