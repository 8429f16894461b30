from django.db import models
from django.conf import settings
from django.utils.text import slugify


class Organization(models.Model):
    """
    Tenant that owns products, warehouses and stock.
    Every catalog query is scoped to the organizations of the requesting user.
    """
    name = models.CharField(
        max_length=200,
        verbose_name='Name'
    )
    slug = models.SlugField(
        max_length=200,
        unique=True,
        verbose_name='Slug'
    )
    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name='organizations',
        verbose_name='Members'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        verbose_name = 'Organization'
        verbose_name_plural = 'Organizations'

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)
            # Ensure unique slug
            base_slug = self.slug
            counter = 1
            while Organization.objects.filter(slug=self.slug).exclude(pk=self.pk).exists():
                self.slug = f"{base_slug}-{counter}"
                counter += 1
        super().save(*args, **kwargs)


class VariantConfig(models.Model):
    """
    Option ranking used to nest variants in inventory views.
    Example: rank1="Color", rank2="Size" shows Color -> Size.
    """
    DEFAULT_RANK1 = 'Color'
    DEFAULT_RANK2 = 'Size'

    organization = models.OneToOneField(
        Organization,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name='variant_config',
        verbose_name='Organization'
    )
    rank1 = models.CharField(
        max_length=100,
        default=DEFAULT_RANK1,
        verbose_name='Rank 1'
    )
    rank2 = models.CharField(
        max_length=100,
        default=DEFAULT_RANK2,
        verbose_name='Rank 2'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Variant configuration'
        verbose_name_plural = 'Variant configurations'

    def __str__(self):
        return f"{self.organization.name}: {self.rank1} > {self.rank2}"

    @classmethod
    def for_organization(cls, organization):
        """Stored config, or an unsaved one carrying the defaults."""
        try:
            return cls.objects.get(organization=organization)
        except cls.DoesNotExist:
            return cls(organization=organization)

    @property
    def custom_order(self):
        return [rank for rank in (self.rank1, self.rank2) if rank]
