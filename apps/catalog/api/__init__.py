from .serializers import (
    ProductSerializer,
    ProductListSerializer,
    ProductDetailSerializer,
    VariantMatrixSerializer,
    VariantCombinationSerializer,
    VariantSerializer,
    VariantListSerializer,
    WarehouseSerializer,
    StockLevelSerializer,
    StockMovementSerializer,
    PriceHistorySerializer,
)

__all__ = [
    'ProductSerializer',
    'ProductListSerializer',
    'ProductDetailSerializer',
    'VariantMatrixSerializer',
    'VariantCombinationSerializer',
    'VariantSerializer',
    'VariantListSerializer',
    'WarehouseSerializer',
    'StockLevelSerializer',
    'StockMovementSerializer',
    'PriceHistorySerializer',
]
