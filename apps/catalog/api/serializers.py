from decimal import Decimal

from rest_framework import serializers
from apps.catalog.models import (
    Organization,
    Category,
    Tag,
    Product,
    Variant,
    Warehouse,
    StockLevel,
    StockMovement,
    PriceHistory,
)
from apps.catalog.services import CatalogService
from apps.catalog.services.variant_matrix import validate_options, options_from_payload


# =============================================================================
# Scoped Fields
# =============================================================================

class OrganizationScopedField(serializers.PrimaryKeyRelatedField):
    """Primary key field limited to objects of the requesting user's organizations."""

    def __init__(self, members_lookup='organization__members', **kwargs):
        self.members_lookup = members_lookup
        super().__init__(**kwargs)

    def get_queryset(self):
        queryset = super().get_queryset()
        request = self.context.get('request')
        if request is None or not request.user.is_authenticated:
            return queryset.none()
        return queryset.filter(**{self.members_lookup: request.user})


# =============================================================================
# Option Serializers
# =============================================================================

class OptionGroupSerializer(serializers.Serializer):
    name = serializers.CharField(allow_blank=True, trim_whitespace=False)
    values = serializers.ListField(
        child=serializers.CharField(allow_blank=True, trim_whitespace=False),
        allow_empty=True
    )


class VariantOverrideSerializer(serializers.Serializer):
    sku = serializers.CharField(required=False, allow_blank=True, max_length=100)
    price = serializers.DecimalField(
        required=False, allow_null=True, max_digits=10, decimal_places=2, min_value=Decimal('0')
    )
    is_active = serializers.BooleanField(required=False)
    stock = serializers.IntegerField(required=False, min_value=0)


class VariantMatrixSerializer(serializers.Serializer):
    """
    Payload to preview or apply option groups on a product.

    Expected payload:
    {
        "options": [{"name": "Size", "values": ["S", "M"]}],
        "default_price": "19.90",
        "overrides": {"m": {"sku": "TOTE-M", "price": "21.00"}},
        "warehouse": 1
    }
    """
    options = OptionGroupSerializer(many=True)
    default_price = serializers.DecimalField(
        required=False, allow_null=True, max_digits=10, decimal_places=2, min_value=Decimal('0')
    )
    overrides = serializers.DictField(
        child=VariantOverrideSerializer(), required=False
    )
    warehouse = OrganizationScopedField(
        queryset=Warehouse.objects.all(), required=False, allow_null=True
    )

    def validate_options(self, value):
        result = validate_options(options_from_payload(value))
        if not result.ok:
            raise serializers.ValidationError(result.message)
        return value

    def get_option_groups(self):
        return options_from_payload(self.validated_data['options'])


class VariantCombinationSerializer(serializers.Serializer):
    """Read-only representation of a generated or reconciled combination."""
    id = serializers.IntegerField(source='identity', allow_null=True)
    name = serializers.CharField()
    signature = serializers.CharField()
    sku = serializers.CharField(allow_blank=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True)
    is_active = serializers.BooleanField(source='active')
    stock = serializers.IntegerField(allow_null=True)
    is_new = serializers.BooleanField()


# =============================================================================
# Variant Serializers
# =============================================================================

class VariantSerializer(serializers.ModelSerializer):
    """Base variant serializer. Name, signature and status come from regeneration."""
    stock_quantity = serializers.IntegerField(read_only=True)

    class Meta:
        model = Variant
        fields = [
            'id', 'product', 'name', 'signature', 'sku', 'price',
            'is_active', 'status', 'archived_at', 'display_order',
            'stock_quantity', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'product', 'name', 'signature', 'status', 'archived_at',
            'display_order', 'created_at', 'updated_at'
        ]

    def validate_sku(self, value):
        value = value.strip()
        if not value or self.instance is None:
            return value
        clash = Variant.objects.filter(
            product__organization_id=self.instance.product.organization_id,
            sku=value,
        ).exclude(pk=self.instance.pk)
        if clash.exists():
            raise serializers.ValidationError(f'SKU "{value}" is already in use')
        return value


class VariantListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for variant lists."""
    product_title = serializers.CharField(source='product.title', read_only=True)

    class Meta:
        model = Variant
        fields = [
            'id', 'product', 'product_title', 'name', 'signature', 'sku',
            'price', 'is_active', 'status', 'display_order'
        ]


# =============================================================================
# Product Serializers
# =============================================================================

class ProductSerializer(serializers.ModelSerializer):
    """Base product serializer."""
    organization = OrganizationScopedField(
        queryset=Organization.objects.all(), members_lookup='members'
    )
    category = OrganizationScopedField(
        queryset=Category.objects.all(), required=False, allow_null=True
    )
    tags = OrganizationScopedField(
        queryset=Tag.objects.all(), many=True, required=False
    )
    option_groups = serializers.JSONField(read_only=True)
    has_variants = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'organization', 'title', 'slug', 'description', 'category',
            'tags', 'base_price', 'option_groups', 'has_variants', 'is_active',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['slug', 'created_at', 'updated_at']

    def validate(self, attrs):
        organization = attrs.get('organization') or getattr(self.instance, 'organization', None)
        category = attrs.get('category')
        if category is not None and category.organization_id != organization.pk:
            raise serializers.ValidationError({'category': 'Category belongs to another organization'})
        if any(tag.organization_id != organization.pk for tag in attrs.get('tags', [])):
            raise serializers.ValidationError({'tags': 'Tag belongs to another organization'})
        return attrs

    def create(self, validated_data):
        tags = validated_data.pop('tags', None)
        product = super().create(validated_data)
        if tags:
            CatalogService.sync_tags(product, tags)
        return product

    def update(self, instance, validated_data):
        tags = validated_data.pop('tags', None)
        product = super().update(instance, validated_data)
        if tags is not None:
            CatalogService.sync_tags(product, tags)
        return product


class ProductDuplicateSerializer(serializers.Serializer):
    title = serializers.CharField(required=False, allow_blank=True, max_length=255)

class ProductListSerializer(serializers.ModelSerializer):
    """Product list with counts."""
    variant_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'organization', 'title', 'slug', 'category', 'base_price',
            'is_active', 'variant_count'
        ]


class ProductDetailSerializer(ProductSerializer):
    """Full product detail with its current variants."""
    variants = serializers.SerializerMethodField()
    archived_variant_count = serializers.IntegerField(read_only=True)

    class Meta(ProductSerializer.Meta):
        fields = ProductSerializer.Meta.fields + ['variants', 'archived_variant_count']

    def get_variants(self, obj):
        return VariantListSerializer(obj.variants.current(), many=True).data


# =============================================================================
# Inventory Serializers
# =============================================================================

class WarehouseSerializer(serializers.ModelSerializer):
    organization = OrganizationScopedField(
        queryset=Organization.objects.all(), members_lookup='members'
    )

    class Meta:
        model = Warehouse
        fields = ['id', 'organization', 'name', 'address', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class StockLevelSerializer(serializers.ModelSerializer):
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True)
    variant_name = serializers.CharField(source='variant.name', read_only=True)
    variant_sku = serializers.CharField(source='variant.sku', read_only=True)

    class Meta:
        model = StockLevel
        fields = [
            'id', 'warehouse', 'warehouse_name', 'variant', 'variant_name',
            'variant_sku', 'quantity', 'updated_at'
        ]
        read_only_fields = fields


class StockAdjustSerializer(serializers.Serializer):
    delta = serializers.IntegerField()
    reason = serializers.ChoiceField(choices=StockMovement.REASON_CHOICES, default='adjustment')
    note = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_delta(self, value):
        if value == 0:
            raise serializers.ValidationError('Delta cannot be zero')
        return value


class StockSetSerializer(serializers.Serializer):
    variant = OrganizationScopedField(
        queryset=Variant.objects.all(), members_lookup='product__organization__members'
    )
    warehouse = OrganizationScopedField(queryset=Warehouse.objects.all())
    quantity = serializers.IntegerField(min_value=0)
    reason = serializers.ChoiceField(choices=StockMovement.REASON_CHOICES, default='adjustment')
    note = serializers.CharField(required=False, allow_blank=True, default='')


class StockMovementSerializer(serializers.ModelSerializer):
    variant = serializers.IntegerField(source='stock_level.variant_id', read_only=True)
    warehouse = serializers.IntegerField(source='stock_level.warehouse_id', read_only=True)
    created_by_username = serializers.CharField(
        source='created_by.username', read_only=True, default=None
    )

    class Meta:
        model = StockMovement
        fields = [
            'id', 'stock_level', 'variant', 'warehouse', 'delta', 'reason',
            'quantity_before', 'quantity_after', 'note',
            'created_by', 'created_by_username', 'created_at'
        ]
        read_only_fields = fields


# =============================================================================
# Price History Serializer
# =============================================================================

class PriceHistorySerializer(serializers.ModelSerializer):
    variant_sku = serializers.CharField(source='variant.sku', read_only=True)
    changed_by_username = serializers.CharField(
        source='changed_by.username', read_only=True, default=None
    )
    price_difference = serializers.DecimalField(
        max_digits=10, decimal_places=2, read_only=True
    )
    percentage_change = serializers.FloatField(read_only=True)

    class Meta:
        model = PriceHistory
        fields = [
            'id', 'variant', 'variant_sku',
            'old_price', 'new_price', 'price_difference', 'percentage_change',
            'changed_by', 'changed_by_username', 'changed_at', 'notes'
        ]


# =============================================================================
# Category / Tag Serializers
# =============================================================================

class CategorySerializer(serializers.ModelSerializer):
    organization = OrganizationScopedField(
        queryset=Organization.objects.all(), members_lookup='members'
    )
    product_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Category
        fields = [
            'id', 'organization', 'name', 'slug', 'sort_order',
            'product_count', 'created_at', 'updated_at'
        ]
        read_only_fields = ['slug', 'created_at', 'updated_at']


class TagSerializer(serializers.ModelSerializer):
    organization = OrganizationScopedField(
        queryset=Organization.objects.all(), members_lookup='members'
    )
    product_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Tag
        fields = ['id', 'organization', 'name', 'slug', 'product_count', 'created_at', 'updated_at']
        read_only_fields = ['slug', 'created_at', 'updated_at']


class CategoryReassignSerializer(serializers.Serializer):
    """Target category for the products of a category; null leaves them uncategorized."""
    to_category = OrganizationScopedField(
        queryset=Category.objects.all(), allow_null=True
    )


class CategoryOrderSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    sort_order = serializers.IntegerField()


class CategoryReorderSerializer(serializers.Serializer):
    organization = OrganizationScopedField(
        queryset=Organization.objects.all(), members_lookup='members'
    )
    updates = CategoryOrderSerializer(many=True)
