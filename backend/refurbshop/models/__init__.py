from .catalog import Device, UpsellProduct
from .inventory import InventoryItem
from .orders import Order, OrderLine, OrderUpsellLine
from .system import Counter, LedgerEvent, Setting

__all__ = [
    'Device', 'UpsellProduct',
    'InventoryItem',
    'Order', 'OrderLine', 'OrderUpsellLine',
    'Counter', 'LedgerEvent', 'Setting',
]
