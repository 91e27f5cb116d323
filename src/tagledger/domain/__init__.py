"""Domain layer for tagledger application.

Services are resolved lazily: the database layer imports
``tagledger.domain.entities``, and the services import the database layer.
"""

_SERVICES = {
    "AccountService": "tagledger.domain.account",
    "CSVImportService": "tagledger.domain.csv_import",
    "LedgerService": "tagledger.domain.ledger",
    "QueryService": "tagledger.domain.query",
    "TagRuleService": "tagledger.domain.tag_rule",
    "TagAssignmentMaintainer": "tagledger.domain.tagging",
    "TransactionService": "tagledger.domain.transaction",
    "UndoService": "tagledger.domain.undo",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        from importlib import import_module

        return getattr(import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
