from .locations import Location, LOCATION_TYPES
from .catalog import Product, ProductLocation, compute_total_quantity
from .ledger import InventoryTransaction, TRANSACTION_TYPES, TRANSACTION_SOURCES
from .bundles import Bundle, BundleComponent
from .channels import ProductMapping, SyncLog, CHANNEL_PLATFORMS, SYNC_ACTIONS, SYNC_STATUSES

__all__ = [
    'Location', 'LOCATION_TYPES',
    'Product', 'ProductLocation', 'compute_total_quantity',
    'InventoryTransaction', 'TRANSACTION_TYPES', 'TRANSACTION_SOURCES',
    'Bundle', 'BundleComponent',
    'ProductMapping', 'SyncLog', 'CHANNEL_PLATFORMS', 'SYNC_ACTIONS', 'SYNC_STATUSES',
]
