from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator


class Warehouse(models.Model):
    """Physical location holding stock for an organization."""
    organization = models.ForeignKey(
        'catalog.Organization',
        on_delete=models.CASCADE,
        related_name='warehouses',
        verbose_name='Organization'
    )
    name = models.CharField(
        max_length=200,
        verbose_name='Name'
    )
    address = models.TextField(
        blank=True,
        verbose_name='Address'
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name='Active'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        verbose_name = 'Warehouse'
        verbose_name_plural = 'Warehouses'

    def __str__(self):
        return self.name


class StockLevel(models.Model):
    """
    Quantity of one variant in one warehouse.
    Only changed through StockService so every change leaves a StockMovement.
    """
    warehouse = models.ForeignKey(
        Warehouse,
        on_delete=models.CASCADE,
        related_name='stock_levels',
        verbose_name='Warehouse'
    )
    variant = models.ForeignKey(
        'catalog.Variant',
        on_delete=models.CASCADE,
        related_name='stock_levels',
        verbose_name='Variant'
    )
    quantity = models.PositiveIntegerField(
        default=0,
        validators=[MinValueValidator(0)],
        verbose_name='Quantity'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['warehouse', 'variant']
        unique_together = ['warehouse', 'variant']
        verbose_name = 'Stock level'
        verbose_name_plural = 'Stock levels'

    def __str__(self):
        return f"{self.variant} @ {self.warehouse}: {self.quantity}"


class StockMovement(models.Model):
    """
    Audit trail of stock changes.
    ``delta`` is what was requested; before/after show what was applied.
    """
    REASON_CHOICES = [
        ('adjustment', 'Adjustment'),
        ('initial_stock', 'Initial stock'),
        ('sale', 'Sale'),
        ('return', 'Return'),
        ('transfer_in', 'Transfer in'),
        ('transfer_out', 'Transfer out'),
        ('damage', 'Damage'),
        ('other', 'Other'),
    ]

    stock_level = models.ForeignKey(
        StockLevel,
        on_delete=models.CASCADE,
        related_name='movements',
        verbose_name='Stock level'
    )
    delta = models.IntegerField(
        verbose_name='Delta',
        help_text='Positive for increases, negative for decreases'
    )
    reason = models.CharField(
        max_length=20,
        choices=REASON_CHOICES,
        default='adjustment',
        verbose_name='Reason'
    )
    quantity_before = models.PositiveIntegerField(
        default=0,
        verbose_name='Quantity before'
    )
    quantity_after = models.PositiveIntegerField(
        default=0,
        verbose_name='Quantity after'
    )
    note = models.TextField(
        blank=True,
        verbose_name='Note'
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        verbose_name='Created by'
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        verbose_name='Created at'
    )

    class Meta:
        ordering = ['-created_at', '-id']
        verbose_name = 'Stock movement'
        verbose_name_plural = 'Stock movements'

    def __str__(self):
        sign = '+' if self.delta > 0 else ''
        return f"{self.stock_level.variant} {sign}{self.delta} ({self.get_reason_display()})"
