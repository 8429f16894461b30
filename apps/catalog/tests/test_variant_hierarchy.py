from types import SimpleNamespace

from django.test import SimpleTestCase

from apps.catalog.services.variant_hierarchy import (
    parse_variant_name,
    unique_option_names,
    variant_option_value,
    group_variants_by_option,
    sort_option_names,
    variant_hierarchy,
    build_variant_tree,
)


NAMES = [
    'Size: S / Color: Orange',
    'Size: M / Color: Orange',
    'Size: S / Color: Blue',
]


class ParseVariantNameTest(SimpleTestCase):

    def test_parse(self):
        self.assertEqual(
            parse_variant_name('Color: Orange / Size: M'),
            [('Color', 'Orange'), ('Size', 'M')]
        )

    def test_blank_and_plain_names(self):
        self.assertEqual(parse_variant_name(''), [])
        self.assertEqual(parse_variant_name(None), [])
        self.assertEqual(parse_variant_name('Default'), [])

    def test_incomplete_pairs_skipped(self):
        self.assertEqual(parse_variant_name('Color: / Size: M'), [('Size', 'M')])

    def test_option_value(self):
        self.assertEqual(variant_option_value(NAMES[0], 'Color'), 'Orange')
        self.assertIsNone(variant_option_value(NAMES[0], 'Material'))


class HierarchyTest(SimpleTestCase):
    """Test ordering option names by the organization ranking"""

    def test_unique_option_names_first_seen(self):
        self.assertEqual(unique_option_names(NAMES), ['Size', 'Color'])

    def test_group_by_option(self):
        groups = group_variants_by_option(NAMES, 'Color')
        self.assertEqual(list(groups), ['Orange', 'Blue'])
        self.assertEqual(len(groups['Orange']), 2)

    def test_ranked_names_first(self):
        self.assertEqual(
            sort_option_names(['Size', 'Material', 'Color'], ['Color', 'Size']),
            ['Color', 'Size', 'Material']
        )

    def test_unranked_names_alphabetical(self):
        self.assertEqual(
            sort_option_names(['Weight', 'Material'], ['Color', 'Size']),
            ['Material', 'Weight']
        )

    def test_hierarchy_without_ranking(self):
        self.assertEqual(variant_hierarchy(NAMES), ['Color', 'Size'])


class BuildVariantTreeTest(SimpleTestCase):

    def test_two_levels(self):
        variants = [SimpleNamespace(name=name) for name in NAMES]

        levels, nodes = build_variant_tree(variants, ['Color', 'Size'])

        self.assertEqual(levels, ['Color', 'Size'])
        self.assertEqual([n['value'] for n in nodes], ['Orange', 'Blue'])
        self.assertEqual([c['value'] for c in nodes[0]['children']], ['S', 'M'])
        self.assertEqual(nodes[1]['children'][0]['variants'], [variants[2]])

    def test_single_level(self):
        variants = [SimpleNamespace(name='Size: S'), SimpleNamespace(name='Size: M')]

        levels, nodes = build_variant_tree(variants, ['Color', 'Size'])

        self.assertEqual(levels, ['Size'])
        self.assertEqual([n['value'] for n in nodes], ['S', 'M'])
        self.assertEqual(nodes[0]['variants'], [variants[0]])

    def test_no_options(self):
        variants = [SimpleNamespace(name='Default')]

        levels, nodes = build_variant_tree(variants)

        self.assertEqual(levels, [])
        self.assertEqual(nodes[0]['variants'], variants)
