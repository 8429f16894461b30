from django_filters import rest_framework as filters
from apps.catalog.models import Product, Variant, StockLevel, StockMovement


class ProductFilter(filters.FilterSet):
    """Filter for products by category and tag."""

    category = filters.NumberFilter(field_name='category__id')
    category_slug = filters.CharFilter(field_name='category__slug')
    uncategorized = filters.BooleanFilter(field_name='category', lookup_expr='isnull')
    tag = filters.CharFilter(method='filter_by_tag')

    class Meta:
        model = Product
        fields = ['organization', 'is_active', 'category']

    def filter_by_tag(self, queryset, name, value):
        """Tag id or slug. Example: ?tag=organic"""
        if value.isdigit():
            return queryset.filter(tags__id=value)
        return queryset.filter(tags__slug=value)


class VariantFilter(filters.FilterSet):
    """Filter for variants by product, status and price range."""

    product = filters.NumberFilter(field_name='product__id')
    product_slug = filters.CharFilter(field_name='product__slug')

    # Price filters
    min_price = filters.NumberFilter(field_name='price', lookup_expr='gte')
    max_price = filters.NumberFilter(field_name='price', lookup_expr='lte')

    # Status filters
    status = filters.ChoiceFilter(choices=Variant.Status.choices)
    include_archived = filters.BooleanFilter(method='filter_include_archived')

    # Option value filter
    option = filters.CharFilter(method='filter_by_option')

    class Meta:
        model = Variant
        fields = ['product', 'product_slug', 'status', 'is_active', 'sku']

    def filter_include_archived(self, queryset, name, value):
        # Archived variants are hidden unless asked for (or filtered by status)
        return queryset

    def filter_queryset(self, queryset):
        data = self.form.cleaned_data
        if not data.get('include_archived') and not data.get('status'):
            queryset = queryset.current()
        return super().filter_queryset(queryset)

    def filter_by_option(self, queryset, name, value):
        """
        Filter by option value in format: option_name:value
        Example: ?option=color:black
        """
        if ':' not in value:
            return queryset

        option_name, option_value = value.split(':', 1)
        return queryset.filter(
            name__icontains=f"{option_name.strip()}: {option_value.strip()}"
        )


class StockLevelFilter(filters.FilterSet):
    product = filters.NumberFilter(field_name='variant__product__id')
    low_stock = filters.NumberFilter(field_name='quantity', lookup_expr='lte')

    class Meta:
        model = StockLevel
        fields = ['warehouse', 'variant', 'product']


class StockMovementFilter(filters.FilterSet):
    warehouse = filters.NumberFilter(field_name='stock_level__warehouse__id')
    variant = filters.NumberFilter(field_name='stock_level__variant__id')
    created_after = filters.DateTimeFilter(field_name='created_at', lookup_expr='gte')
    created_before = filters.DateTimeFilter(field_name='created_at', lookup_expr='lte')

    class Meta:
        model = StockMovement
        fields = ['reason', 'warehouse', 'variant', 'stock_level']
