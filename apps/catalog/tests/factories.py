"""
Test utilities and factories for creating catalog test data
"""
import random
import string
from decimal import Decimal

from django.contrib.auth import get_user_model

from apps.catalog.models import Organization, Category, Tag, Product, Variant, Warehouse, StockLevel
from apps.catalog.services import OptionGroup

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=8):
        return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))

    @staticmethod
    def create_user(username=None, password='testpass123', organization=None):
        """Create a test user, optionally as member of an organization"""
        if not username:
            username = f'user_{TestDataFactory.random_string(6)}'
        user = User.objects.create_user(
            username=username,
            email=f'{username}@test.com',
            password=password
        )
        if organization is not None:
            organization.members.add(user)
        return user

    @staticmethod
    def create_organization(name=None, members=()):
        organization = Organization.objects.create(
            name=name or f'Org {TestDataFactory.random_string(6)}'
        )
        for member in members:
            organization.members.add(member)
        return organization

    @staticmethod
    def create_category(organization, name=None, sort_order=0):
        return Category.objects.create(
            organization=organization,
            name=name or f'Category {TestDataFactory.random_string(4)}',
            sort_order=sort_order
        )

    @staticmethod
    def create_tag(organization, name=None):
        return Tag.objects.create(
            organization=organization,
            name=name or f'Tag {TestDataFactory.random_string(4)}'
        )

    @staticmethod
    def create_product(organization, title='Tote Bag', base_price=Decimal('10.00'), **kwargs):
        return Product.objects.create(
            organization=organization,
            title=title,
            base_price=base_price,
            **kwargs
        )

    @staticmethod
    def create_variant(product, name, sku='', price=None, **kwargs):
        """Create a variant directly; the signature is derived from the name."""
        return Variant.objects.create(
            product=product,
            name=name,
            sku=sku,
            price=price,
            **kwargs
        )

    @staticmethod
    def create_warehouse(organization, name=None):
        return Warehouse.objects.create(
            organization=organization,
            name=name or f'Warehouse {TestDataFactory.random_string(4)}'
        )

    @staticmethod
    def create_stock_level(variant, warehouse, quantity=0):
        return StockLevel.objects.create(
            variant=variant,
            warehouse=warehouse,
            quantity=quantity
        )

    @staticmethod
    def size_color_options(sizes=('S', 'M'), colors=('Red', 'Blue')):
        return [
            OptionGroup('Size', list(sizes)),
            OptionGroup('Color', list(colors)),
        ]
