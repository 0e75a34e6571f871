from .tenancy import Company, CompanyBranch
from .numbering import InvoiceNumberingConfig, DocumentSequence
from .parties import Client
from .purchasing import PurchaseOrder, GoodsReceiptNote
from .billing import Invoice
from .security import SecurityEvent

__all__ = [
    'Company', 'CompanyBranch',
    'InvoiceNumberingConfig', 'DocumentSequence',
    'Client',
    'PurchaseOrder', 'GoodsReceiptNote',
    'Invoice',
    'SecurityEvent',
]
