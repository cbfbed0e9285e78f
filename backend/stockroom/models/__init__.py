from .tenancy import Business, Branch, User, OwnerBusinessLink
from .catalog import Item, ItemBarcode
from .stock import StockLevel, Movement
from .purchasing import (
    Vendor, PurchaseOrder, PurchaseOrderItem, PurchaseOrderActivity, POTemplate, POTemplateItem,
)
from .documents import Transfer, TransferItem, InventoryCount, CountItem, DocumentSequence

__all__ = [
    'Business', 'Branch', 'User', 'OwnerBusinessLink',
    'Item', 'ItemBarcode',
    'StockLevel', 'Movement',
    'Vendor', 'PurchaseOrder', 'PurchaseOrderItem', 'PurchaseOrderActivity', 'POTemplate', 'POTemplateItem',
    'Transfer', 'TransferItem', 'InventoryCount', 'CountItem', 'DocumentSequence',
]
