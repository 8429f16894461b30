"""
Per-warehouse stock changes.
Every change goes through StockService so it leaves a StockMovement row.
"""

import logging
from typing import Optional

from django.db import transaction

from apps.catalog.models import StockLevel, StockMovement, Variant, Warehouse
from .variant_matrix import stock_delta

logger = logging.getLogger(__name__)

VALID_REASONS = {code for code, _ in StockMovement.REASON_CHOICES}


class StockError(Exception):
    """Raised for stock changes that cannot be applied."""


class StockService:
    """
    Apply stock deltas with a movement ledger.

    Quantities never go below zero: a decrease larger than the stock on hand
    empties the level, and the movement keeps the requested delta.
    """

    @staticmethod
    def _check_scope(variant: Variant, warehouse: Warehouse):
        if variant.product.organization_id != warehouse.organization_id:
            raise StockError('Warehouse and variant belong to different organizations')

    @staticmethod
    def get_level(variant: Variant, warehouse: Warehouse) -> StockLevel:
        StockService._check_scope(variant, warehouse)
        level, _ = StockLevel.objects.get_or_create(variant=variant, warehouse=warehouse)
        return level

    @staticmethod
    def adjust(
        stock_level: StockLevel,
        delta: int,
        reason: str = 'adjustment',
        note: str = '',
        user=None
    ) -> StockMovement:
        """
        Add ``delta`` to a stock level and record the movement.

        Returns the created StockMovement. ``stock_level.quantity`` is refreshed.
        """
        if reason not in VALID_REASONS:
            raise StockError(f'Unknown stock movement reason "{reason}"')
        try:
            delta = int(delta)
        except (TypeError, ValueError):
            raise StockError(f'Invalid stock delta "{delta}"')

        with transaction.atomic():
            level = StockLevel.objects.select_for_update().get(pk=stock_level.pk)
            before = level.quantity
            level.quantity = max(0, before + delta)
            level.save(update_fields=['quantity', 'updated_at'])

            movement = StockMovement.objects.create(
                stock_level=level,
                delta=delta,
                reason=reason,
                quantity_before=before,
                quantity_after=level.quantity,
                note=note or '',
                created_by=user,
            )

        stock_level.quantity = level.quantity
        logger.info(
            "Stock level %s adjusted by %s (%s): %s -> %s",
            level.pk, delta, reason, before, level.quantity
        )
        return movement

    @staticmethod
    def set_quantity(
        variant: Variant,
        warehouse: Warehouse,
        quantity: int,
        reason: str = 'adjustment',
        note: str = '',
        user=None
    ) -> Optional[StockMovement]:
        """
        Bring the stock of a variant in a warehouse to ``quantity``.

        Returns the movement, or None when the quantity was already right.
        """
        try:
            quantity = int(quantity)
        except (TypeError, ValueError):
            raise StockError(f'Invalid quantity "{quantity}"')
        if quantity < 0:
            raise StockError('Quantity cannot be negative')

        with transaction.atomic():
            level = StockService.get_level(variant, warehouse)
            level = StockLevel.objects.select_for_update().get(pk=level.pk)
            delta = stock_delta(level.quantity, quantity)
            if delta == 0:
                return None
            return StockService.adjust(level, delta, reason=reason, note=note, user=user)

    @staticmethod
    def receive_initial_stock(
        variant: Variant,
        warehouse: Warehouse,
        quantity: int,
        user=None
    ) -> Optional[StockMovement]:
        if not quantity or int(quantity) <= 0:
            return None
        level = StockService.get_level(variant, warehouse)
        return StockService.adjust(
            level,
            int(quantity),
            reason='initial_stock',
            note='Initial inventory setup',
            user=user,
        )
