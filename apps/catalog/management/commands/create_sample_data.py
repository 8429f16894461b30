"""
Create a demo organization with products, generated variants and stock.
Run with: python manage.py create_sample_data [--user admin]
"""
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from apps.catalog.models import Organization, VariantConfig, Category, Tag, Product, Warehouse
from apps.catalog.services import OptionGroup, VariantSyncService, CatalogService


SAMPLE_PRODUCTS = [
    {
        'title': 'Tote Bag',
        'category': 'Accessories',
        'tags': ['Canvas'],
        'description': 'Canvas tote bag',
        'base_price': Decimal('19.90'),
        'options': [
            OptionGroup('Size', ['S', 'M', 'L']),
            OptionGroup('Color', ['Black', 'Natural']),
        ],
        'stock': 10,
    },
    {
        'title': 'Grow Tent',
        'category': 'Equipment',
        'tags': ['Indoor'],
        'description': 'Indoor grow tent',
        'base_price': Decimal('129.00'),
        'options': [
            OptionGroup('Size', ['60x60', '80x80', '120x120']),
        ],
        'stock': 3,
    },
    {
        'title': 'Plant Food 1L',
        'category': 'Nutrients',
        'tags': ['Indoor', 'Organic'],
        'description': 'Liquid nutrient, no variants',
        'base_price': Decimal('12.50'),
        'options': [],
        'stock': 25,
    },
]


class Command(BaseCommand):
    help = 'Create a demo organization with products, variants and initial stock'

    def add_arguments(self, parser):
        parser.add_argument(
            '--user',
            help='Username added as member of the demo organization'
        )
        parser.add_argument(
            '--organization',
            default='Growbro Demo',
            help='Name of the demo organization'
        )

    def handle(self, *args, **options):
        organization, created = Organization.objects.get_or_create(
            name=options['organization']
        )
        self.stdout.write(f"{'Created' if created else 'Using'} organization {organization.name}")

        if options.get('user'):
            User = get_user_model()
            try:
                user = User.objects.get(username=options['user'])
            except User.DoesNotExist:
                raise CommandError(f"User \"{options['user']}\" does not exist")
            organization.members.add(user)
        else:
            user = None

        VariantConfig.objects.get_or_create(organization=organization)
        warehouse, _ = Warehouse.objects.get_or_create(
            organization=organization,
            name='Main warehouse'
        )

        for data in SAMPLE_PRODUCTS:
            category, _ = Category.objects.get_or_create(organization=organization, name=data['category'])
            product, _ = Product.objects.get_or_create(
                organization=organization,
                title=data['title'],
                defaults={
                    'description': data['description'],
                    'category': category,
                    'base_price': data['base_price'],
                }
            )
            CatalogService.sync_tags(product, [
                Tag.objects.get_or_create(organization=organization, name=name)[0]
                for name in data['tags']
            ])
            preview = VariantSyncService.preview(product, data['options'])
            overrides = {
                combination.signature: {'stock': data['stock']}
                for combination in preview.merged
            }
            report = VariantSyncService.apply(
                product,
                data['options'],
                overrides=overrides,
                warehouse=warehouse,
                user=user,
            )
            self.stdout.write(
                f"  {product.title}: {report.added} added, {report.kept} kept, "
                f"{report.archived} archived"
            )

        self.stdout.write(self.style.SUCCESS('Sample data created.'))
