from .database import Database
from .listing import ListEngine, ListPage, ResourceSpec
from .sequences import SequenceGenerator
from .clients import ClientRepository
from .purchases import PurchaseRepository
from .invoices import InvoiceRepository
from .finance import FinanceRepository
from .stats import LedgerAggregator
from .settings_store import SettingsStore

__all__ = [
    "Database",
    "ListEngine", "ListPage", "ResourceSpec",
    "SequenceGenerator",
    "ClientRepository", "PurchaseRepository", "InvoiceRepository", "FinanceRepository",
    "LedgerAggregator",
    "SettingsStore",
]
