from .catalog import Book, Publisher, SalesAssociate, Expedition
from .sales import SalesTransaction, SalesTransactionItem, Payment, SalesTransactionInstallment, Shipping
from .purchasing import PurchaseTransaction, PurchaseTransactionItem
from .documents import DocumentSequence

__all__ = [
    'Book', 'Publisher', 'SalesAssociate', 'Expedition',
    'SalesTransaction', 'SalesTransactionItem', 'Payment', 'SalesTransactionInstallment', 'Shipping',
    'PurchaseTransaction', 'PurchaseTransactionItem',
    'DocumentSequence',
]
