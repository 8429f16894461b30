"""
Persist variant regenerations.

The pure matrix functions decide what to keep, add and archive; this service
reads the current variants of a product, runs that diff and writes the outcome
in one transaction. Variants are archived, never deleted.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Sum

from apps.catalog.models import Product, Variant, Warehouse
from .inventory import StockService
from .variant_matrix import (
    SKU_MAX_ATTEMPTS,
    OptionGroup,
    ReconcileResult,
    VariantCombination,
    assign_missing_skus,
    generate_combinations,
    reconcile_variants,
    to_price,
    validate_options,
)

logger = logging.getLogger(__name__)

DEFAULT_VARIANT_NAME = 'Default'


class OptionValidationError(Exception):
    """Option groups failed validation; the message is user facing."""


class VariantConflictError(Exception):
    """The regeneration would break signature or SKU uniqueness."""


@dataclass
class SyncReport:
    added: int = 0
    kept: int = 0
    archived: int = 0
    variants: List[Variant] = field(default_factory=list)

    def as_dict(self):
        return {'added': self.added, 'kept': self.kept, 'archived': self.archived}


class VariantSyncService:
    """
    Preview and apply option group changes to the stored variants of a product.

    A product without option groups is sold through a single "Default"
    variant (empty signature), so switching between simple and variable
    products goes through the same reconciliation.
    """

    @staticmethod
    def snapshot(product: Product) -> List[VariantCombination]:
        """Current (non archived) variants as combinations, stock summed over warehouses."""
        variants = product.variants.current().annotate(
            total_stock=Sum('stock_levels__quantity')
        ).order_by('display_order', 'id')
        return [variant.to_combination(stock=variant.total_stock or 0) for variant in variants]

    @staticmethod
    def generate(product: Product, options: List[OptionGroup], default_price: Any = None):
        if default_price is None or str(default_price).strip() == '':
            default_price = product.base_price
        generated = generate_combinations(options, default_price)
        if not generated:
            generated = [VariantCombination(
                name=DEFAULT_VARIANT_NAME,
                signature='',
                price=to_price(default_price),
            )]
        return generated

    @staticmethod
    def preview(
        product: Product,
        options: List[OptionGroup],
        default_price: Any = None
    ) -> ReconcileResult:
        """Reconcile without writing anything."""
        generated = VariantSyncService.generate(product, options, default_price)
        return reconcile_variants(generated, VariantSyncService.snapshot(product))

    @staticmethod
    def organization_skus(product: Product) -> set:
        return set(
            Variant.objects.filter(
                product__organization_id=product.organization_id
            ).exclude(sku='').values_list('sku', flat=True)
        )

    @staticmethod
    def _apply_overrides(merged: List[VariantCombination], overrides: Optional[Dict[str, Dict]]):
        """
        Apply values edited by the user, keyed by signature.

        Example:
            {'m|black': {'sku': 'TOTE-MB', 'price': '12.50', 'is_active': False, 'stock': 4}}
        """
        if not overrides:
            return
        for combination in merged:
            values = overrides.get(combination.signature)
            if not values:
                continue
            if 'sku' in values:
                combination.sku = (values.get('sku') or '').strip()
            if 'price' in values:
                combination.price = to_price(values.get('price'))
            if 'is_active' in values:
                combination.active = bool(values.get('is_active'))
            if 'stock' in values and combination.is_new:
                combination.stock = int(values.get('stock') or 0)

    @staticmethod
    def _check_skus(product: Product, merged: List[VariantCombination]):
        seen = set()
        for combination in merged:
            if not combination.sku:
                continue
            if combination.sku in seen:
                raise VariantConflictError(f'SKU "{combination.sku}" is used twice')
            seen.add(combination.sku)

        owned = {c.identity for c in merged if c.identity is not None}
        taken = Variant.objects.filter(
            product__organization_id=product.organization_id,
            sku__in=seen,
        ).exclude(pk__in=owned)
        sku = taken.values_list('sku', flat=True).first()
        if sku:
            raise VariantConflictError(f'SKU "{sku}" is already in use')

    @staticmethod
    def apply(
        product: Product,
        options: List[OptionGroup],
        default_price: Any = None,
        overrides: Optional[Dict[str, Dict]] = None,
        warehouse: Optional[Warehouse] = None,
        user=None
    ) -> SyncReport:
        """
        Regenerate the variants of a product from ``options`` and persist them.

        Kept variants are updated in place (name, signature, order), new ones
        inserted with an auto SKU when left blank, and variants whose
        combination disappeared are archived. When ``warehouse`` is given, new
        variants with a stock value get an initial stock movement there.
        """
        options = list(options)
        validation = validate_options(options)
        if not validation.ok:
            raise OptionValidationError(validation.message)

        try:
            with transaction.atomic():
                # Serialize regenerations of the same product
                product = Product.objects.select_for_update().get(pk=product.pk)
                result = VariantSyncService.preview(product, options, default_price)
                if result.collisions:
                    raise VariantConflictError(
                        'Different options produce the same variant: '
                        + ', '.join(result.collisions)
                    )

                merged = result.merged
                VariantSyncService._apply_overrides(merged, overrides)
                VariantSyncService._check_skus(product, merged)
                assign_missing_skus(
                    product.title,
                    merged,
                    VariantSyncService.organization_skus(product),
                    max_attempts=getattr(settings, 'GROWBRO_SKU_MAX_ATTEMPTS', SKU_MAX_ATTEMPTS),
                )

                report = VariantSyncService._write(product, options, result, warehouse, user)
        except IntegrityError as exc:
            logger.warning("Variant regeneration for product %s conflicted: %s", product.pk, exc)
            raise VariantConflictError('Variants were changed concurrently, reload and retry') from exc

        logger.info(
            "Applied variants for product %s: added=%s kept=%s archived=%s",
            product.pk, report.added, report.kept, report.archived
        )
        return report

    @staticmethod
    def _write(product, options, result, warehouse, user) -> SyncReport:
        archived = Variant.objects.filter(product=product, pk__in=result.archived_ids)
        archived_count = 0
        for variant in archived:
            variant._changed_by = user
            variant.archive()
            archived_count += 1

        current = {
            v.pk: v for v in product.variants.current().filter(
                pk__in=[c.identity for c in result.merged if c.identity is not None]
            )
        }

        # Free SKUs that move between rows before writing any of them
        releasing = [
            c.identity for c in result.merged
            if c.identity in current and current[c.identity].sku != c.sku
        ]
        if releasing:
            Variant.objects.filter(pk__in=releasing).update(sku='')

        variants = []
        for position, combination in enumerate(result.merged):
            variant = current.get(combination.identity)
            if variant is not None:
                variant.name = combination.name
                variant.signature = combination.signature
                variant.sku = combination.sku
                variant.price = combination.price
                variant.is_active = combination.active
                variant.display_order = position
                variant._changed_by = user
                variant.save()
            else:
                variant = Variant.objects.create(
                    product=product,
                    name=combination.name,
                    signature=combination.signature,
                    sku=combination.sku,
                    price=combination.price,
                    is_active=combination.active,
                    display_order=position,
                )
                if warehouse is not None and combination.stock:
                    StockService.receive_initial_stock(variant, warehouse, combination.stock, user=user)
            variants.append(variant)

        product.option_groups = [group.to_dict() for group in options if group.clean_values]
        product.save(update_fields=['option_groups', 'updated_at'])

        return SyncReport(
            added=result.added_count,
            kept=result.kept_count,
            archived=archived_count,
            variants=variants,
        )

    @staticmethod
    def unarchive(variant: Variant, user=None) -> Variant:
        """
        Make an archived variant current again.

        Refused while another current variant of the product has the same
        signature. The variant keeps its SKU; it is archived again by the next
        regeneration whose options no longer produce it.
        """
        if not variant.is_archived:
            return variant

        try:
            with transaction.atomic():
                clash = Variant.objects.current().filter(
                    product_id=variant.product_id,
                    signature=variant.signature,
                ).exclude(pk=variant.pk)
                if clash.exists():
                    raise VariantConflictError(
                        f'Variant "{clash.first().name}" already uses this combination'
                    )
                variant._changed_by = user
                variant.unarchive()
        except IntegrityError as exc:
            raise VariantConflictError('Variants were changed concurrently, reload and retry') from exc

        logger.info("Unarchived variant %s of product %s", variant.pk, variant.product_id)
        return variant
