"""Domain layer for bankrec application.

Services are imported lazily: the database layer imports
``bankrec.domain.entities`` and must not pull the services in with it.
"""

_SERVICES = {
    "AccountService": "bankrec.domain.account",
    "StatementImportService": "bankrec.domain.statement_import",
    "BatchRepairService": "bankrec.domain.batch_repair",
    "BalanceService": "bankrec.domain.balances",
    "CashPositionService": "bankrec.domain.cash_position",
    "ReconciliationService": "bankrec.domain.reconciliation",
    "TransactionExportService": "bankrec.domain.export",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        import importlib

        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
