import logging

from rest_framework import viewsets, mixins, filters, status
from rest_framework.decorators import action
from rest_framework.generics import get_object_or_404
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend
from django.db.models import Count

from apps.catalog.models import (
    Category,
    Tag,
    Product,
    Variant,
    VariantConfig,
    Warehouse,
    StockLevel,
    StockMovement,
    PriceHistory,
)
from apps.catalog.services import (
    VariantSyncService,
    StockService,
    StockError,
    OptionValidationError,
    VariantConflictError,
    SkuGenerationError,
    CatalogService,
    CatalogError,
)
from apps.catalog.services.variant_hierarchy import build_variant_tree
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
    StockAdjustSerializer,
    StockSetSerializer,
    StockMovementSerializer,
    PriceHistorySerializer,
    ProductDuplicateSerializer,
    CategorySerializer,
    TagSerializer,
    CategoryReassignSerializer,
    CategoryReorderSerializer,
)
from .filters import ProductFilter, VariantFilter, StockLevelFilter, StockMovementFilter

logger = logging.getLogger(__name__)


class ProductViewSet(viewsets.ModelViewSet):
    """
    API endpoint for products of the user's organizations.

    list: List all products
    retrieve: Get product detail with current variants
    create: Create a new product
    update: Update a product
    delete: Deactivate a product and archive its variants
    variants_preview: Diff option groups against the stored variants
    variants_apply: Regenerate and persist the variants
    duplicate: Copy a product with its current variants
    """
    queryset = Product.objects.select_related('organization', 'category').prefetch_related('tags')
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = ProductFilter
    search_fields = ['title', 'description']
    ordering_fields = ['title', 'created_at']
    ordering = ['title']

    def get_serializer_class(self):
        if self.action == 'list':
            return ProductListSerializer
        elif self.action == 'retrieve':
            return ProductDetailSerializer
        return ProductSerializer

    def get_queryset(self):
        return super().get_queryset().filter(
            organization__members=self.request.user
        ).distinct()

    def perform_destroy(self, instance):
        # Products are deactivated and their variants archived, never deleted
        for variant in instance.variants.current():
            variant._changed_by = self.request.user
            variant.archive()
        instance.is_active = False
        instance.save(update_fields=['is_active', 'updated_at'])

    def _matrix_payload(self, request):
        serializer = VariantMatrixSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        return serializer

    @action(detail=True, methods=['post'], url_path='variants/preview', url_name='variants-preview')
    def variants_preview(self, request, pk=None):
        """
        Preview a regeneration without saving.

        Expected payload:
        {
            "options": [{"name": "Size", "values": ["S", "M"]}],
            "default_price": "19.90"
        }
        """
        product = self.get_object()
        payload = self._matrix_payload(request)
        result = VariantSyncService.preview(
            product,
            payload.get_option_groups(),
            payload.validated_data.get('default_price'),
        )
        return Response({
            'variants': VariantCombinationSerializer(result.merged, many=True).data,
            'added': result.added_count,
            'kept': result.kept_count,
            'archived': result.archived_count,
            'archived_ids': result.archived_ids,
            'collisions': result.collisions,
        })

    @action(detail=True, methods=['post'], url_path='variants/apply', url_name='variants-apply')
    def variants_apply(self, request, pk=None):
        """
        Regenerate and persist the variants of a product.

        Same payload as preview, plus optional "overrides" keyed by signature
        and a "warehouse" receiving the initial stock of new variants.
        """
        product = self.get_object()
        payload = self._matrix_payload(request)
        data = payload.validated_data

        try:
            report = VariantSyncService.apply(
                product,
                payload.get_option_groups(),
                default_price=data.get('default_price'),
                overrides=data.get('overrides'),
                warehouse=data.get('warehouse'),
                user=request.user,
            )
        except OptionValidationError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except (StockError, SkuGenerationError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except VariantConflictError as e:
            logger.info("Variant regeneration refused for product %s: %s", product.pk, e)
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        return Response({
            **report.as_dict(),
            'variants': VariantListSerializer(report.variants, many=True).data,
        })

    @action(detail=True, methods=['post'])
    def duplicate(self, request, pk=None):
        """
        Copy a product with its category, tags, options and current variants.

        Expected payload (optional):
        {"title": "Tote Bag Summer"}
        """
        product = self.get_object()
        serializer = ProductDuplicateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            copy = CatalogService.duplicate_product(
                product, title=serializer.validated_data.get('title')
            )
        except SkuGenerationError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(
            ProductDetailSerializer(copy, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )


class VariantViewSet(
mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     mixins.UpdateModelMixin,
                     viewsets.GenericViewSet):
    """
    API endpoint for variants.

    Variants are created and archived through product regeneration; here
    only SKU, price and the active flag are editable. Archived variants are
    listed with ?include_archived=true or ?status=archived.
    """
    queryset = Variant.objects.select_related('product')
    serializer_class = VariantSerializer
    filterset_class = VariantFilter
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['sku', 'name', 'product__title']
    ordering_fields = ['sku', 'price', 'display_order', 'created_at']
    ordering = ['product', 'display_order']

    def get_queryset(self):
        return super().get_queryset().for_user(self.request.user).distinct()

    def get_serializer_class(self):
        if self.action == 'list':
            return VariantListSerializer
        return VariantSerializer

    def perform_update(self, serializer):
        serializer.instance._changed_by = self.request.user
        serializer.save()

    @action(detail=True, methods=['get'])
    def price_history(self, request, pk=None):
        """Get price history for a variant."""
        variant = self.get_object()
        history = PriceHistory.objects.filter(variant=variant).select_related('changed_by')
        serializer = PriceHistorySerializer(history, many=True)
        return Response(serializer.data)

    @action(detail=True, methods=['post'])
    def unarchive(self, request, pk=None):
        """Make an archived variant current again unless its combination is taken."""
        # Detail routes hide archived variants, so look up without the filter
        variant = get_object_or_404(self.get_queryset(), pk=pk)
        self.check_object_permissions(request, variant)

        try:
            VariantSyncService.unarchive(variant, user=request.user)
        except VariantConflictError as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(VariantSerializer(variant).data)

    @action(detail=False, methods=['post'])
    def bulk_update_prices(self, request):
        """
        Bulk update variant prices.

        Expected payload:
        {
            "updates": [
                {"id": 1, "price": 99.99},
                {"id": 2, "price": null}
            ]
        }
        """
        updates = request.data.get('updates', []) if isinstance(request.data, dict) else None
        if not isinstance(updates, list):
            return Response(
                {'error': 'updates must be a list'},
                status=status.HTTP_400_BAD_REQUEST
            )

        updated_count = 0
        errors = []

        for update in updates:
            if not isinstance(update, dict):
                errors.append(f"Invalid update {update!r}")
                continue

            variant_id = update.get('id')
            if not variant_id or 'price' not in update:
                continue

            try:
                variant = self.get_queryset().get(pk=variant_id)
            except Variant.DoesNotExist:
                errors.append(f"Variant {variant_id} not found")
                continue
            except (ValueError, TypeError):
                errors.append(f"Invalid variant id {variant_id!r}")
                continue

            serializer = VariantSerializer(
                variant, data={'price': update['price']}, partial=True
            )
            if not serializer.is_valid():
                errors.append(f"Variant {variant_id}: {serializer.errors}")
                continue

            variant._changed_by = request.user
            serializer.save()
            updated_count += 1

        return Response({
            'updated': updated_count,
            'errors': errors
        })

    @action(detail=False, methods=['get'])
    def hierarchy(self, request):
        """
        Current variants of a product nested by the organization's option ranking.

        Query params:
        - product: Required product id
        """
        product_id = request.query_params.get('product')
        if not product_id or not product_id.isdigit():
            return Response(
                {'error': 'product must be a product id'},
                status=status.HTTP_400_BAD_REQUEST
            )

        product = get_object_or_404(
            Product.objects.filter(organization__members=request.user).distinct(),
            pk=product_id
        )
        config = VariantConfig.for_organization(product.organization)
        levels, nodes = build_variant_tree(
            product.variants.current().order_by('display_order', 'id'),
            config.custom_order
        )

        def serialize(node):
            data = {
                'value': node['value'],
                'variants': VariantListSerializer(node.get('variants', []), many=True).data,
            }
            if 'children' in node:
                data['children'] = [serialize(child) for child in node['children']]
            return data

        return Response({
            'product': product.pk,
            'levels': levels,
            'groups': [serialize(node) for node in nodes],
        })


class WarehouseViewSet(viewsets.ModelViewSet):
    """
    API endpoint for warehouses.
    """
    queryset = Warehouse.objects.all()
    serializer_class = WarehouseSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['organization', 'is_active']
    search_fields = ['name', 'address']

    def get_queryset(self):
        return super().get_queryset().filter(
            organization__members=self.request.user
        ).distinct()


class StockLevelViewSet(viewsets.ReadOnlyModelViewSet):
    """
    API endpoint for stock per variant and warehouse.
    Quantities change only through the adjust and set_quantity actions.
    """
    queryset = StockLevel.objects.select_related('warehouse', 'variant')
    serializer_class = StockLevelSerializer
    filterset_class = StockLevelFilter
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    ordering = ['warehouse', 'variant']

    def get_queryset(self):
        return super().get_queryset().filter(
            warehouse__organization__members=self.request.user
        ).distinct()

    @action(detail=True, methods=['post'])
    def adjust(self, request, pk=None):
        """
        Add or remove stock.

        Expected payload:
        {"delta": -2, "reason": "sale", "note": "Order #1001"}
        """
        level = self.get_object()
        serializer = StockAdjustSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            movement = StockService.adjust(
                level,
                serializer.validated_data['delta'],
                reason=serializer.validated_data['reason'],
                note=serializer.validated_data['note'],
                user=request.user,
            )
        except StockError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response({
            'stock_level': StockLevelSerializer(level).data,
            'movement': StockMovementSerializer(movement).data,
        })

    @action(detail=False, methods=['post'])
    def set_quantity(self, request):
        """
        Set the stock of a variant in a warehouse.

        Expected payload:
        {"variant": 1, "warehouse": 2, "quantity": 10}
        """
        serializer = StockSetSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            movement = StockService.set_quantity(
                data['variant'],
                data['warehouse'],
                data['quantity'],
                reason=data['reason'],
                note=data['note'],
                user=request.user,
            )
        except StockError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        level = StockLevel.objects.get(variant=data['variant'], warehouse=data['warehouse'])
        return Response({
            'stock_level': StockLevelSerializer(level).data,
            'movement': StockMovementSerializer(movement).data if movement else None,
        })


class StockMovementViewSet(viewsets.ReadOnlyModelViewSet):
    """
    API endpoint for the stock movement ledger (read-only).
    """
    queryset = StockMovement.objects.select_related(
        'stock_level__variant', 'stock_level__warehouse', 'created_by'
    )
    serializer_class = StockMovementSerializer
    filterset_class = StockMovementFilter
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    ordering = ['-created_at', '-id']

    def get_queryset(self):
        return super().get_queryset().filter(
            stock_level__warehouse__organization__members=self.request.user
        ).distinct()


class PriceHistoryViewSet(viewsets.ReadOnlyModelViewSet):
    """
    API endpoint for price history (read-only).
    """
    queryset = PriceHistory.objects.select_related('variant', 'changed_by')
    serializer_class = PriceHistorySerializer
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['variant']
    ordering = ['-changed_at', '-id']

    def get_queryset(self):
        return super().get_queryset().filter(
            variant__product__organization__members=self.request.user
        ).distinct()


class CategoryViewSet(viewsets.ModelViewSet):
    """
    API endpoint for product categories.

    Deleting a category leaves its products uncategorized.
    reassign_products: Move every product of a category to another one
    reorder: Set sort_order on several categories at once
    """
    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['organization']
    search_fields = ['name']
    ordering_fields = ['sort_order', 'name']
    ordering = ['sort_order', 'name']

    def get_queryset(self):
        return super().get_queryset().filter(
            organization__members=self.request.user
        ).annotate(product_count=Count('products', distinct=True))

    @action(detail=True, methods=['post'])
    def reassign_products(self, request, pk=None):
        """
        Expected payload:
        {"to_category": 4}
        """
        category = self.get_object()
        serializer = CategoryReassignSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)

        try:
            moved = CatalogService.reassign_products(
                category, serializer.validated_data['to_category']
            )
        except CatalogError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response({'moved': moved})

    @action(detail=False, methods=['post'])
    def reorder(self, request):
        """
        Expected payload:
        {
            "organization": 1,
            "updates": [{"id": 3, "sort_order": 0}, {"id": 1, "sort_order": 1}]
        }
        """
        serializer = CategoryReorderSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)

        try:
            count = CatalogService.reorder_categories(
                serializer.validated_data['organization'],
                serializer.validated_data['updates'],
            )
        except CatalogError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response({'updated': count})


class TagViewSet(viewsets.ModelViewSet):
    """
    API endpoint for product tags.
    """
    queryset = Tag.objects.all()
    serializer_class = TagSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['organization']
    search_fields = ['name']

    def get_queryset(self):
        return super().get_queryset().filter(
            organization__members=self.request.user
        ).annotate(product_count=Count('products', distinct=True))
