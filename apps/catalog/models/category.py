from django.db import models
from django.utils.text import slugify


def unique_org_slug(instance, value, fallback):
    """Slug of ``value`` not yet used by another row of the same organization."""
    model = type(instance)
    base_slug = slugify(value) or fallback
    slug = base_slug
    counter = 1
    while model.objects.filter(
        organization_id=instance.organization_id, slug=slug
    ).exclude(pk=instance.pk).exists():
        counter += 1
        slug = f"{base_slug}-{counter}"
    return slug


class Category(models.Model):
    """
    Product category of an organization.
    A product has at most one; deleting a category leaves its products uncategorized.
    """
    organization = models.ForeignKey(
        'catalog.Organization',
        on_delete=models.CASCADE,
        related_name='categories',
        verbose_name='Organization'
    )
    name = models.CharField(
        max_length=200,
        verbose_name='Name'
    )
    slug = models.SlugField(
        max_length=200,
        verbose_name='Slug'
    )
    sort_order = models.IntegerField(
        default=0,
        db_index=True,
        verbose_name='Sort order'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['sort_order', 'name']
        unique_together = [['organization', 'slug'], ['organization', 'name']]
        verbose_name = 'Category'
        verbose_name_plural = 'Categories'

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_org_slug(self, self.name, 'category')
        super().save(*args, **kwargs)


class Tag(models.Model):
    """Free label attached to any number of products of the same organization."""
    organization = models.ForeignKey(
        'catalog.Organization',
        on_delete=models.CASCADE,
        related_name='tags',
        verbose_name='Organization'
    )
    name = models.CharField(
        max_length=100,
        verbose_name='Name'
    )
    slug = models.SlugField(
        max_length=100,
        verbose_name='Slug'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        unique_together = [['organization', 'slug'], ['organization', 'name']]
        verbose_name = 'Tag'
        verbose_name_plural = 'Tags'

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_org_slug(self, self.name, 'tag')
        super().save(*args, **kwargs)
