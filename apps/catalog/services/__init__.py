from .variant_matrix import (
    OptionGroup,
    VariantCombination,
    ValidationResult,
    ReconcileResult,
    SkuGenerationError,
    validate_options,
    variant_signature,
    signature_from_name,
    generate_combinations,
    reconcile_variants,
    auto_sku,
    unique_sku,
    assign_missing_skus,
    stock_delta,
)
from .inventory import StockService, StockError
from .variant_sync import (
    VariantSyncService,
    SyncReport,
    OptionValidationError,
    VariantConflictError,
)
from .catalog import CatalogService, CatalogError

__all__ = [
    'OptionGroup',
    'VariantCombination',
    'ValidationResult',
    'ReconcileResult',
    'SkuGenerationError',
    'validate_options',
    'variant_signature',
    'signature_from_name',
    'generate_combinations',
    'reconcile_variants',
    'auto_sku',
    'unique_sku',
    'assign_missing_skus',
    'stock_delta',
    'StockService',
    'StockError',
    'VariantSyncService',
    'SyncReport',
    'OptionValidationError',
    'VariantConflictError',
    'CatalogService',
    'CatalogError',
]
