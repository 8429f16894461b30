"""
Django signals for the catalog app.
Handles automatic creation of price history records.
"""

import logging

from django.db.models.signals import pre_save
from django.dispatch import receiver

from .models import Variant, PriceHistory

logger = logging.getLogger(__name__)


@receiver(pre_save, sender=Variant)
def track_price_changes(sender, instance, **kwargs):
    """
    Create PriceHistory records when variant prices change.

    The user making the change can be attached to the instance as
    ``_changed_by`` before saving.
    """
    if not instance.pk:
        # New variant, no history to track
        return

    try:
        old_instance = Variant.objects.get(pk=instance.pk)
    except Variant.DoesNotExist:
        return

    if old_instance.price != instance.price:
        PriceHistory.objects.create(
            variant=instance,
            old_price=old_instance.price,
            new_price=instance.price,
            changed_by=getattr(instance, '_changed_by', None),
        )
        logger.debug(
            "Price of variant %s changed from %s to %s",
            instance.pk, old_instance.price, instance.price
        )
