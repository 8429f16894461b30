from django.contrib import admin, messages
from django.db.models import Count
from django.utils.html import format_html
from import_export import resources, fields
from import_export.admin import ImportExportModelAdmin, ExportMixin
from import_export.widgets import ForeignKeyWidget
from simple_history.admin import SimpleHistoryAdmin

from .services import VariantSyncService, VariantConflictError

from .models import (
    Organization,
    VariantConfig,
    Category,
    Tag,
    Product,
    Variant,
    Warehouse,
    StockLevel,
    StockMovement,
    PriceHistory,
)


# =============================================================================
# Import/Export Resources
# =============================================================================

class VariantResource(resources.ModelResource):
    """Resource for exporting variants and updating SKU/price by import."""

    product_title = fields.Field(
        column_name='product_title',
        attribute='product',
        widget=ForeignKeyWidget(Product, 'title'),
        readonly=True
    )
    # Regeneration owns names, signatures and status
    name = fields.Field(attribute='name', column_name='name', readonly=True)
    signature = fields.Field(attribute='signature', column_name='signature', readonly=True)
    status = fields.Field(attribute='status', column_name='status', readonly=True)

    class Meta:
        model = Variant
        import_id_fields = ['id']
        fields = (
            'id', 'product_title', 'name', 'signature', 'sku', 'price',
            'is_active', 'status'
        )
        export_order = fields
        skip_unchanged = True


class StockMovementResource(resources.ModelResource):
    variant_sku = fields.Field(column_name='variant_sku', attribute='stock_level__variant__sku')
    warehouse = fields.Field(column_name='warehouse', attribute='stock_level__warehouse__name')

    class Meta:
        model = StockMovement
        fields = (
            'id', 'created_at', 'variant_sku', 'warehouse', 'delta', 'reason',
            'quantity_before', 'quantity_after', 'note'
        )
        export_order = fields


# =============================================================================
# Inlines
# =============================================================================

class VariantConfigInline(admin.StackedInline):
    model = VariantConfig
    can_delete = False
    fields = ['rank1', 'rank2']


class VariantInline(admin.TabularInline):
    model = Variant
    extra = 0
    fields = ['name', 'sku', 'price', 'is_active', 'status']
    readonly_fields = ['name', 'status']
    show_change_link = True
    can_delete = False

    def get_queryset(self, request):
        return super().get_queryset(request).filter(status=Variant.Status.ACTIVE)

    def has_add_permission(self, request, obj=None):
        return False


class StockLevelInline(admin.TabularInline):
    model = StockLevel
    extra = 0
    fields = ['warehouse', 'quantity']
    readonly_fields = ['warehouse', 'quantity']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


# =============================================================================
# Model Admins
# =============================================================================

@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'created_at']
    search_fields = ['name', 'slug']
    prepopulated_fields = {'slug': ('name',)}
    filter_horizontal = ['members']
    inlines = [VariantConfigInline]


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'organization', 'slug', 'sort_order', 'product_count']
    list_editable = ['sort_order']
    list_filter = ['organization']
    search_fields = ['name', 'slug']
    prepopulated_fields = {'slug': ('name',)}

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(_product_count=Count('products'))

    def product_count(self, obj):
        return obj._product_count
    product_count.short_description = 'Products'
    product_count.admin_order_field = '_product_count'


@admin.register(Tag)
class TagAdmin(admin.ModelAdmin):
    list_display = ['name', 'organization', 'slug']
    list_filter = ['organization']
    search_fields = ['name', 'slug']
    prepopulated_fields = {'slug': ('name',)}


@admin.register(Product)
class ProductAdmin(SimpleHistoryAdmin):
    list_display = ['title', 'organization', 'category', 'slug', 'variant_count', 'is_active', 'created_at']
    list_filter = ['is_active', 'organization', 'category', 'tags', 'created_at']
    search_fields = ['title', 'slug', 'description']
    prepopulated_fields = {'slug': ('title',)}
    readonly_fields = ['option_groups', 'variant_count', 'archived_variant_count', 'created_at', 'updated_at']
    autocomplete_fields = ['organization']
    filter_horizontal = ['tags']
    inlines = [VariantInline]

    fieldsets = (
        (None, {
            'fields': ('organization', 'title', 'slug', 'description', 'category', 'tags', 'base_price', 'is_active')
        }),
        ('Variants', {
            'fields': ('option_groups', 'variant_count', 'archived_variant_count'),
        }),
        ('Info', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Variant)
class VariantAdmin(ImportExportModelAdmin, SimpleHistoryAdmin):
    resource_class = VariantResource
    list_display = [
        'name', 'sku', 'product', 'price', 'stock_quantity', 'is_active', 'status_badge'
    ]
    list_filter = ['status', 'is_active', 'product__organization']
    list_editable = ['price', 'is_active']
    search_fields = ['sku', 'name', 'signature', 'product__title']
    readonly_fields = [
        'product', 'name', 'signature', 'status', 'archived_at',
        'display_order', 'stock_quantity', 'created_at', 'updated_at'
    ]
    inlines = [StockLevelInline]
    list_per_page = 50

    fieldsets = (
        (None, {
            'fields': ('product', 'name', 'signature', 'sku', 'is_active')
        }),
        ('Price', {
            'fields': ('price',)
        }),
        ('Status', {
            'fields': ('status', 'archived_at', 'display_order', 'stock_quantity')
        }),
        ('Info', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    actions = ['activate_variants', 'deactivate_variants', 'archive_variants', 'unarchive_variants']

    def status_badge(self, obj):
        if obj.is_archived:
            return format_html('<span style="color: gray;">{}</span>', 'Archived')
        if not obj.is_active:
            return format_html('<span style="color: orange;">{}</span>', 'Inactive')
        return format_html('<span style="color: green;">{}</span>', 'Active')
    status_badge.short_description = 'Status'

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.action(description='Activate selected variants')
    def activate_variants(self, request, queryset):
        count = queryset.current().update(is_active=True)
        self.message_user(request, f'{count} variants activated.')

    @admin.action(description='Deactivate selected variants')
    def deactivate_variants(self, request, queryset):
        count = queryset.update(is_active=False)
        self.message_user(request, f'{count} variants deactivated.')

    @admin.action(description='Archive selected variants')
    def archive_variants(self, request, queryset):
        count = 0
        for variant in queryset.current():
            variant._changed_by = request.user
            variant.archive()
            count += 1
        self.message_user(request, f'{count} variants archived.')

    @admin.action(description='Unarchive selected variants')
    def unarchive_variants(self, request, queryset):
        count = 0
        for variant in queryset.archived():
            try:
                VariantSyncService.unarchive(variant, user=request.user)
            except VariantConflictError as e:
                self.message_user(request, f'{variant}: {e}', level=messages.WARNING)
                continue
            count += 1
        self.message_user(request, f'{count} variants unarchived.')


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ['name', 'organization', 'is_active', 'created_at']
    list_filter = ['is_active', 'organization']
    search_fields = ['name', 'address']


@admin.register(StockLevel)
class StockLevelAdmin(admin.ModelAdmin):
    list_display = ['variant', 'warehouse', 'quantity', 'updated_at']
    list_filter = ['warehouse']
    search_fields = ['variant__sku', 'variant__name']
    readonly_fields = ['variant', 'warehouse', 'quantity', 'created_at', 'updated_at']

    def has_add_permission(self, request):
        return False


@admin.register(StockMovement)
class StockMovementAdmin(ExportMixin, admin.ModelAdmin):
    resource_class = StockMovementResource
    list_display = [
        'created_at', 'stock_level', 'delta_display', 'reason',
        'quantity_before', 'quantity_after', 'created_by'
    ]
    list_filter = ['reason', 'created_at', 'stock_level__warehouse']
    search_fields = ['stock_level__variant__sku', 'note']
    date_hierarchy = 'created_at'

    def delta_display(self, obj):
        if obj.delta > 0:
            return format_html('<span style="color: green;">+{}</span>', obj.delta)
        return format_html('<span style="color: red;">{}</span>', obj.delta)
    delta_display.short_description = 'Delta'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(PriceHistory)
class PriceHistoryAdmin(admin.ModelAdmin):
    list_display = [
        'variant', 'old_price', 'new_price',
        'price_diff_display', 'changed_by', 'changed_at'
    ]
    list_filter = ['changed_at', 'variant__product']
    search_fields = ['variant__sku', 'variant__name']
    readonly_fields = [
        'variant', 'old_price', 'new_price',
        'changed_by', 'changed_at', 'price_difference', 'percentage_change'
    ]
    date_hierarchy = 'changed_at'

    def price_diff_display(self, obj):
        diff = obj.price_difference
        if diff is None:
            return '-'
        if diff > 0:
            return format_html('<span style="color: green;">+{}</span>', f'{diff:.2f}')
        elif diff < 0:
            return format_html('<span style="color: red;">{}</span>', f'{diff:.2f}')
        return '0.00'
    price_diff_display.short_description = 'Difference'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =============================================================================
# Admin Site Configuration
# =============================================================================

admin.site.site_header = 'Growbro Admin'
admin.site.site_title = 'Growbro'
admin.site.index_title = 'Catalog administration'
