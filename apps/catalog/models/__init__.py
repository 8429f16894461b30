"""
Catalog models for a multi-tenant shop with generated product variants.

Model Hierarchy:
- Organization: Tenant owning products and warehouses
- VariantConfig: Option ranking (Color > Size) for inventory views
- Category / Tag: Organization scoped product grouping and labels
- Product: Base product (e.g., "Tote Bag") with its last applied option groups
- Variant: One option combination with SKU, price and an active/archived status
- Warehouse / StockLevel / StockMovement: Per-warehouse stock and its ledger
- PriceHistory: Audit of variant price changes
"""

from .organization import Organization, VariantConfig
from .category import Category, Tag
from .product import Product
from .variant import Variant
from .inventory import Warehouse, StockLevel, StockMovement
from .price_history import PriceHistory

__all__ = [
    'Organization',
    'VariantConfig',
    'Category',
    'Tag',
    'Product',
    'Variant',
    'Warehouse',
    'StockLevel',
    'StockMovement',
    'PriceHistory',
]
