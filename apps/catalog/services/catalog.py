"""
Organizing products: categories, tags and product copies.
"""

import logging
from typing import Dict, Iterable, List, Optional

from django.conf import settings
from django.db import transaction

from apps.catalog.models import Category, Product, Tag, Variant
from .variant_matrix import SKU_MAX_ATTEMPTS, unique_sku
from .variant_sync import VariantSyncService

logger = logging.getLogger(__name__)

COPY_TITLE_SUFFIX = ' (Copy)'
COPY_SKU_SUFFIX = '-COPY'


class CatalogError(Exception):
    """Raised for category, tag or copy requests that cannot be applied."""


class CatalogService:
    """Category and tag housekeeping scoped to one organization."""

    @staticmethod
    def _check_organization(organization_id, objects, label):
        for obj in objects:
            if obj.organization_id != organization_id:
                raise CatalogError(f'{label} "{obj}" belongs to another organization')

    @staticmethod
    def reassign_products(from_category: Category, to_category: Optional[Category] = None) -> int:
        """
        Move every product of ``from_category`` to ``to_category``.
        ``None`` leaves them uncategorized. Returns the number of products moved.
        """
        if to_category is not None:
            CatalogService._check_organization(from_category.organization_id, [to_category], 'Category')
            if to_category.pk == from_category.pk:
                return 0

        count = Product.objects.filter(category=from_category).update(category=to_category)
        logger.info(
            "Moved %s products from category %s to %s",
            count, from_category.pk, to_category.pk if to_category else None
        )
        return count

    @staticmethod
    def reorder_categories(organization, updates: Iterable[Dict]) -> int:
        """
        Set ``sort_order`` on several categories at once.

        Example:
            reorder_categories(org, [{'id': 3, 'sort_order': 0}, {'id': 1, 'sort_order': 1}])
        """
        orders = {}
        for update in updates:
            try:
                orders[int(update['id'])] = int(update['sort_order'])
            except (KeyError, TypeError, ValueError):
                raise CatalogError(f'Invalid sort order update {update!r}')

        categories = list(organization.categories.filter(pk__in=orders))
        missing = set(orders) - {c.pk for c in categories}
        if missing:
            raise CatalogError(f'Unknown categories: {", ".join(str(pk) for pk in sorted(missing))}')

        for category in categories:
            category.sort_order = orders[category.pk]
        Category.objects.bulk_update(categories, ['sort_order'])
        return len(categories)

    @staticmethod
    def sync_tags(product: Product, tags: Iterable[Tag]):
        """
        Make the tags of ``product`` exactly ``tags``.
        Returns the number of tags added and removed.
        """
        tags = list(tags)
        CatalogService._check_organization(product.organization_id, tags, 'Tag')

        current = set(product.tags.values_list('pk', flat=True))
        wanted = {tag.pk for tag in tags}
        to_add = wanted - current
        to_remove = current - wanted
        if to_add:
            product.tags.add(*to_add)
        if to_remove:
            product.tags.remove(*to_remove)
        return len(to_add), len(to_remove)

    @staticmethod
    def duplicate_product(product: Product, title: Optional[str] = None) -> Product:
        """
        Copy a product with its category, tags, option groups and current variants.

        Copied SKUs get a "-COPY" suffix (numbered when taken); stock is not copied.
        """
        max_attempts = getattr(settings, 'GROWBRO_SKU_MAX_ATTEMPTS', SKU_MAX_ATTEMPTS)

        with transaction.atomic():
            copy = Product.objects.create(
                organization=product.organization,
                title=(title or '').strip() or f'{product.title}{COPY_TITLE_SUFFIX}',
                description=product.description,
                category=product.category,
                base_price=product.base_price,
                is_active=product.is_active,
                option_groups=[group.to_dict() for group in product.get_option_groups()],
            )
            copy.tags.set(product.tags.all())

            taken = VariantSyncService.organization_skus(product)
            variants: List[Variant] = []
            for variant in product.variants.current().order_by('display_order', 'id'):
                sku = ''
                if variant.sku:
                    sku = unique_sku(f'{variant.sku}{COPY_SKU_SUFFIX}', taken, max_attempts=max_attempts)
                    taken.add(sku)
                variants.append(Variant(
                    product=copy,
                    name=variant.name,
                    signature=variant.signature,
                    sku=sku,
                    price=variant.price,
                    is_active=variant.is_active,
                    display_order=variant.display_order,
                ))
            for variant in variants:
                variant.save()

        logger.info("Duplicated product %s as %s", product.pk, copy.pk)
        return copy
