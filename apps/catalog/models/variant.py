from django.db import models
from django.core.validators import MinValueValidator
from django.db.models import Q, Sum
from django.utils import timezone
from decimal import Decimal
from simple_history.models import HistoricalRecords


class VariantQuerySet(models.QuerySet):

    def current(self):
        """Variants that are not archived."""
        return self.filter(status=Variant.Status.ACTIVE)

    def archived(self):
        return self.filter(status=Variant.Status.ARCHIVED)

    def for_user(self, user):
        return self.filter(product__organization__members=user)


class Variant(models.Model):
    """
    One sellable combination of option values, e.g. "Size: M / Color: Black".

    ``signature`` ("m|black") is the durable identity used to match a variant
    across regenerations; ``name`` is rebuilt from the current option names.
    Variants are archived, never deleted, so orders and stock movements keep
    their references.
    """

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        ARCHIVED = 'archived', 'Archived'

    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.CASCADE,
        related_name='variants',
        verbose_name='Product'
    )
    name = models.CharField(
        max_length=255,
        verbose_name='Name'
    )
    signature = models.CharField(
        max_length=255,
        blank=True,
        db_index=True,
        verbose_name='Signature',
        help_text='Normalized option values joined with "|"'
    )
    sku = models.CharField(
        max_length=100,
        blank=True,
        verbose_name='SKU'
    )

    # Pricing
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.00'))],
        verbose_name='Price'
    )

    # Status
    is_active = models.BooleanField(
        default=True,
        verbose_name='Active',
        help_text='Available for sale'
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True,
        verbose_name='Status'
    )
    archived_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name='Archived at'
    )
    display_order = models.PositiveIntegerField(
        default=0,
        verbose_name='Display order'
    )

    # Timestamps
    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name='Created at'
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name='Updated at'
    )

    # History tracking
    history = HistoricalRecords()

    objects = VariantQuerySet.as_manager()

    class Meta:
        ordering = ['product', 'display_order', 'id']
        verbose_name = 'Variant'
        verbose_name_plural = 'Variants'
        constraints = [
            models.UniqueConstraint(
                fields=['product', 'signature'],
                condition=Q(status='active'),
                name='unique_active_variant_signature',
            ),
            models.UniqueConstraint(
                fields=['product', 'sku'],
                condition=~Q(sku=''),
                name='unique_variant_sku_per_product',
            ),
        ]

    def __str__(self):
        return self.name or self.sku or self.signature

    def save(self, *args, **kwargs):
        if not self.signature and self.name:
            from apps.catalog.services.variant_matrix import signature_from_name
            self.signature = signature_from_name(self.name)
        super().save(*args, **kwargs)

    @property
    def is_archived(self):
        return self.status == self.Status.ARCHIVED

    @property
    def stock_quantity(self):
        result = self.stock_levels.aggregate(total=Sum('quantity'))
        return result['total'] or 0

    def archive(self, save=True):
        """Mark the variant as no longer current without deleting it."""
        self.status = self.Status.ARCHIVED
        self.is_active = False
        self.archived_at = timezone.now()
        if save:
            self.save(update_fields=['status', 'is_active', 'archived_at', 'updated_at'])

    def unarchive(self, save=True):
        """Make an archived variant current again; callers check the signature is free."""
        self.status = self.Status.ACTIVE
        self.is_active = True
        self.archived_at = None
        if save:
            self.save(update_fields=['status', 'is_active', 'archived_at', 'updated_at'])

    def to_combination(self, stock=None):
        """Stored state as a VariantCombination; pass ``stock`` when already aggregated."""
        from apps.catalog.services.variant_matrix import VariantCombination
        return VariantCombination(
            identity=self.pk,
            name=self.name,
            signature=self.signature,
            sku=self.sku,
            price=self.price,
            active=self.is_active,
            stock=self.stock_quantity if stock is None else stock,
            is_new=False,
        )
