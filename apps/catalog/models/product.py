from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
from simple_history.models import HistoricalRecords

from .category import unique_org_slug


class Product(models.Model):
    """
    Base product owned by an organization.
    Example: "Tote Bag" which is sold as variants (Size: M / Color: Black, ...).
    """
    organization = models.ForeignKey(
        'catalog.Organization',
        on_delete=models.CASCADE,
        related_name='products',
        verbose_name='Organization'
    )
    title = models.CharField(
        max_length=255,
        verbose_name='Title'
    )
    slug = models.SlugField(
        max_length=255,
        verbose_name='Slug'
    )
    description = models.TextField(
        blank=True,
        verbose_name='Description'
    )
    category = models.ForeignKey(
        'catalog.Category',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='products',
        verbose_name='Category'
    )
    tags = models.ManyToManyField(
        'catalog.Tag',
        blank=True,
        related_name='products',
        verbose_name='Tags'
    )
    base_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.00'))],
        verbose_name='Base price',
        help_text='Default price for newly generated variants'
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name='Active'
    )

    # Last applied option groups: [{"name": "Size", "values": ["S", "M"]}, ...]
    # Compared against on the next regeneration.
    option_groups = models.JSONField(
        default=list,
        blank=True,
        verbose_name='Option groups',
        help_text='JSON of the option groups used to generate variants'
    )

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

    class Meta:
        ordering = ['title']
        unique_together = ['organization', 'slug']
        verbose_name = 'Product'
        verbose_name_plural = 'Products'

    def __str__(self):
        return self.title

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_org_slug(self, self.title, 'product')
        super().save(*args, **kwargs)

    @property
    def variant_count(self):
        return self.variants.current().count()

    @property
    def archived_variant_count(self):
        return self.variants.archived().count()

    @property
    def has_variants(self):
        return bool(self.option_groups)

    def get_option_groups(self):
        """Return the stored option groups as OptionGroup objects."""
        from apps.catalog.services.variant_matrix import options_from_payload
        return options_from_payload(self.option_groups)
