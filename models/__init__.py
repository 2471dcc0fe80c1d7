from .common import CamelModel
from .client import Address, Client, ClientInput, ClientUpdate
from .purchase_order import ItemInput, Purchase, PurchaseInput, PurchaseItem, PurchaseItemInput
from .invoice import Invoice, InvoiceInput, InvoiceItem, InvoiceItemInput, InvoiceStatusUpdate
from .finance import FinanceRecord, FinanceRecordInput, FinanceRecordUpdate
from .result import FinanceStats, InvoiceStats

__all__ = [
    "CamelModel",
    "Address", "Client", "ClientInput", "ClientUpdate",
    "ItemInput", "Purchase", "PurchaseInput", "PurchaseItem", "PurchaseItemInput",
    "Invoice", "InvoiceInput", "InvoiceItem", "InvoiceItemInput", "InvoiceStatusUpdate",
    "FinanceRecord", "FinanceRecordInput", "FinanceRecordUpdate",
    "FinanceStats", "InvoiceStats",
]
