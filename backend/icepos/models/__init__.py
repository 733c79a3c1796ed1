from .catalog import Product, IceProduct, GasProduct, WaterProduct, Discount
from .sales import Sale, SaleItem
from .customers import Customer
from .inventory import StockLog, StockReceipt, DailyStockCount, OutstandingCylinder
from .auth import User
from .system import QueuedOperation, AppSetting

__all__ = [
    'Product', 'IceProduct', 'GasProduct', 'WaterProduct', 'Discount',
    'Sale', 'SaleItem',
    'Customer',
    'StockLog', 'StockReceipt', 'DailyStockCount', 'OutstandingCylinder',
    'User',
    'QueuedOperation', 'AppSetting',
]
