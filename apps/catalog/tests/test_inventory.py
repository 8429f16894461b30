from django.test import TestCase

from apps.catalog.models import StockLevel, StockMovement
from apps.catalog.services import StockService, StockError
from .factories import TestDataFactory


class StockServiceTest(TestCase):
    """Test stock changes and their movement ledger"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(members=[self.user])
        self.product = TestDataFactory.create_product(self.organization)
        self.variant = TestDataFactory.create_variant(self.product, 'Size: M', sku='TOTE-M')
        self.warehouse = TestDataFactory.create_warehouse(self.organization)

    def test_adjust_increases_and_records_movement(self):
        level = TestDataFactory.create_stock_level(self.variant, self.warehouse, 2)

        movement = StockService.adjust(level, 5, reason='return', note='RMA 12', user=self.user)

        self.assertEqual(level.quantity, 7)
        self.assertEqual(StockLevel.objects.get(pk=level.pk).quantity, 7)
        self.assertEqual(movement.delta, 5)
        self.assertEqual((movement.quantity_before, movement.quantity_after), (2, 7))
        self.assertEqual(movement.reason, 'return')
        self.assertEqual(movement.created_by, self.user)

    def test_adjust_never_goes_below_zero(self):
        level = TestDataFactory.create_stock_level(self.variant, self.warehouse, 3)

        movement = StockService.adjust(level, -10, reason='sale')

        self.assertEqual(level.quantity, 0)
        self.assertEqual(movement.delta, -10)
        self.assertEqual(movement.quantity_after, 0)

    def test_adjust_rejects_unknown_reason(self):
        level = TestDataFactory.create_stock_level(self.variant, self.warehouse)
        with self.assertRaises(StockError):
            StockService.adjust(level, 1, reason='gift')
        self.assertFalse(StockMovement.objects.exists())

    def test_set_quantity_creates_level(self):
        movement = StockService.set_quantity(self.variant, self.warehouse, 4)

        level = StockLevel.objects.get(variant=self.variant, warehouse=self.warehouse)
        self.assertEqual(level.quantity, 4)
        self.assertEqual(movement.delta, 4)

    def test_set_quantity_computes_delta(self):
        TestDataFactory.create_stock_level(self.variant, self.warehouse, 10)

        movement = StockService.set_quantity(self.variant, self.warehouse, 6)

        self.assertEqual(movement.delta, -4)
        self.assertEqual(self.variant.stock_quantity, 6)

    def test_set_same_quantity_writes_nothing(self):
        TestDataFactory.create_stock_level(self.variant, self.warehouse, 3)

        self.assertIsNone(StockService.set_quantity(self.variant, self.warehouse, 3))
        self.assertFalse(StockMovement.objects.exists())

    def test_set_negative_quantity_rejected(self):
        with self.assertRaises(StockError):
            StockService.set_quantity(self.variant, self.warehouse, -1)

    def test_warehouse_of_other_organization_rejected(self):
        other = TestDataFactory.create_warehouse(TestDataFactory.create_organization())
        with self.assertRaises(StockError):
            StockService.set_quantity(self.variant, other, 1)
        self.assertFalse(StockLevel.objects.exists())

    def test_receive_initial_stock(self):
        movement = StockService.receive_initial_stock(self.variant, self.warehouse, 8)

        self.assertEqual(movement.reason, 'initial_stock')
        self.assertEqual(movement.note, 'Initial inventory setup')
        self.assertIsNone(StockService.receive_initial_stock(self.variant, self.warehouse, 0))
