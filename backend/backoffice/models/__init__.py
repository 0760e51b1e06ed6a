from .auth import User, SessionToken
from .locations import StorageLocation
from .inventory import Ingredient, StockHolding, WasteRecord
from .prep import PrepRecipe, PrepRecipeInput, PrepTask
from .purchasing import Supplier, PurchaseOrder, PurchaseOrderItem
from .ledger import StockLedgerEvent

__all__ = [
    'User', 'SessionToken',
    'StorageLocation',
    'Ingredient', 'StockHolding', 'WasteRecord',
    'PrepRecipe', 'PrepRecipeInput', 'PrepTask',
    'Supplier', 'PurchaseOrder', 'PurchaseOrderItem',
    'StockLedgerEvent',
]
