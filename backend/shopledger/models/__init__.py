from .tenancy import Account, AppSettings
from .inventory import Product
from .parties import Customer, Supplier
from .sales import Sale, SaleLine
from .purchases import PurchaseInvoice, PurchaseLine
from .returns import Return, ReturnLine
from .quotations import Quotation, QuotationLine
from .ledger import BusinessTransaction, ActivityLogEntry
from .backups import BackupSnapshot

__all__ = [
    'Account', 'AppSettings',
    'Product',
    'Customer', 'Supplier',
    'Sale', 'SaleLine',
    'PurchaseInvoice', 'PurchaseLine',
    'Return', 'ReturnLine',
    'Quotation', 'QuotationLine',
    'BusinessTransaction', 'ActivityLogEntry',
    'BackupSnapshot',
]
