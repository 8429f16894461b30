from dataclasses import replace
from decimal import Decimal

from django.test import SimpleTestCase

from apps.catalog.services.variant_matrix import (
    OptionGroup,
    VariantCombination,
    SkuGenerationError,
    validate_options,
    variant_signature,
    signature_from_name,
    generate_combinations,
    reconcile_variants,
    auto_sku,
    unique_sku,
    assign_missing_skus,
    stock_delta,
    options_from_payload,
)


def stored(generated):
    """Turn freshly generated combinations into stored ones with ids."""
    return [
        replace(combination, identity=index, is_new=False, stock=0)
        for index, combination in enumerate(generated, start=1)
    ]


class ValidateOptionsTest(SimpleTestCase):
    """Test option group validation"""

    def test_empty_list_is_valid(self):
        self.assertTrue(validate_options([]).ok)

    def test_blank_name_rejected(self):
        result = validate_options([OptionGroup('   ', ['S'])])
        self.assertFalse(result.ok)
        self.assertEqual(result.message, 'Option name is required')

    def test_option_without_values_rejected(self):
        result = validate_options([OptionGroup('Size', ['', '  '])])
        self.assertFalse(result)
        self.assertEqual(result.message, 'Option "Size" needs at least one value')

    def test_duplicate_values_rejected_case_insensitive(self):
        result = validate_options([OptionGroup('Size', ['M', ' m '])])
        self.assertFalse(result.ok)
        self.assertEqual(result.message, 'Option "Size" has duplicate values')

    def test_duplicate_option_names_rejected(self):
        result = validate_options([OptionGroup('Size', ['S']), OptionGroup('size', ['M'])])
        self.assertFalse(result.ok)
        self.assertIn('defined more than once', result.message)

    def test_valid_options(self):
        result = validate_options([OptionGroup('Size', ['S', 'M']), OptionGroup('Color', ['Red'])])
        self.assertTrue(result.ok)
        self.assertEqual(result.message, '')


class SignatureTest(SimpleTestCase):
    """Test signature building"""

    def test_values_are_trimmed_and_lowercased(self):
        self.assertEqual(variant_signature([' M ', 'BLACK']), 'm|black')
        self.assertEqual(variant_signature(['m', 'black']), variant_signature(['M ', ' Black']))

    def test_order_matters(self):
        self.assertNotEqual(variant_signature(['M', 'Black']), variant_signature(['Black', 'M']))

    def test_signature_from_name(self):
        self.assertEqual(signature_from_name('Size: M / Color: Black'), 'm|black')

    def test_signature_from_name_without_options(self):
        self.assertEqual(signature_from_name('Default'), '')
        self.assertEqual(signature_from_name(None), '')

    def test_signature_from_name_keeps_colons_in_values(self):
        self.assertEqual(signature_from_name('Ratio: 1:2'), '1:2')


class GenerateCombinationsTest(SimpleTestCase):
    """Test cartesian expansion of option groups"""

    def test_two_by_two_in_order(self):
        combos = generate_combinations([
            OptionGroup('Size', ['S', 'M']),
            OptionGroup('Color', ['Red', 'Blue']),
        ])
        self.assertEqual(len(combos), 4)
        self.assertEqual([c.name for c in combos], [
            'Size: S / Color: Red',
            'Size: S / Color: Blue',
            'Size: M / Color: Red',
            'Size: M / Color: Blue',
        ])
        self.assertEqual([c.signature for c in combos], ['s|red', 's|blue', 'm|red', 'm|blue'])

    def test_new_combinations_defaults(self):
        combos = generate_combinations([OptionGroup('Size', ['S'])], default_price='9.50')
        combo = combos[0]
        self.assertEqual(combo.sku, '')
        self.assertEqual(combo.price, Decimal('9.50'))
        self.assertTrue(combo.active)
        self.assertTrue(combo.is_new)
        self.assertIsNone(combo.identity)

    def test_no_options_generates_nothing(self):
        self.assertEqual(generate_combinations([]), [])

    def test_names_and_values_are_trimmed(self):
        combos = generate_combinations([OptionGroup(' Size ', [' S ', ''])])
        self.assertEqual(len(combos), 1)
        self.assertEqual(combos[0].name, 'Size: S')
        self.assertEqual(combos[0].signature, 's')

    def test_options_from_payload(self):
        options = options_from_payload([{'name': 'Size', 'values': ['S', 'M']}])
        self.assertEqual(options, [OptionGroup('Size', ['S', 'M'])])


class ReconcileVariantsTest(SimpleTestCase):
    """Test diffing generated combinations against stored variants"""

    def setUp(self):
        self.options = [
            OptionGroup('Size', ['S', 'M']),
            OptionGroup('Color', ['Red', 'Blue']),
        ]

    def test_everything_new_without_existing(self):
        result = reconcile_variants(generate_combinations(self.options), [])
        self.assertEqual(result.added_count, 4)
        self.assertEqual(result.kept_count, 0)
        self.assertEqual(result.archived_ids, [])

    def test_rename_keeps_identity(self):
        existing = [VariantCombination(
            name='Color: Red', signature='red', sku='TEE-RED',
            price=Decimal('5.00'), active=False, stock=3, identity=7, is_new=False,
        )]
        generated = generate_combinations([OptionGroup('Colour', ['Red', 'Blue'])])

        result = reconcile_variants(generated, existing)

        kept = result.merged[0]
        self.assertEqual(kept.identity, 7)
        self.assertEqual(kept.name, 'Colour: Red')
        self.assertEqual(kept.sku, 'TEE-RED')
        self.assertEqual(kept.price, Decimal('5.00'))
        self.assertFalse(kept.active)
        self.assertEqual(kept.stock, 3)
        self.assertFalse(kept.is_new)
        self.assertTrue(result.merged[1].is_new)
        self.assertEqual((result.added_count, result.kept_count), (1, 1))
        self.assertEqual(result.archived_ids, [])

    def test_missing_signatures_are_archived(self):
        existing = [
            VariantCombination(name='Color: Red', signature='red', identity=1, is_new=False),
            VariantCombination(name='Color: Green', signature='green', identity=2, is_new=False),
        ]
        generated = generate_combinations([OptionGroup('Color', ['Red', 'Blue'])])

        result = reconcile_variants(generated, existing)

        self.assertEqual(result.archived_ids, [2])
        self.assertEqual(result.archived_count, 1)
        self.assertEqual([c.signature for c in result.merged], ['red', 'blue'])

    def test_stored_entry_without_signature_matched_by_name(self):
        existing = [VariantCombination(name='Color: Red', signature='', identity=1, is_new=False)]
        generated = generate_combinations([OptionGroup('Color', ['Red'])])

        result = reconcile_variants(generated, existing)

        self.assertEqual(result.kept_count, 1)
        self.assertEqual(result.merged[0].identity, 1)
        self.assertEqual(result.merged[0].signature, 'red')

    def test_duplicate_stored_signature_archives_extra_records(self):
        existing = [
            VariantCombination(name='Color: Red', signature='red', identity=1, is_new=False),
            VariantCombination(name='Color: RED', signature='red', identity=2, is_new=False),
        ]
        generated = generate_combinations([OptionGroup('Color', ['Red'])])

        result = reconcile_variants(generated, existing)

        self.assertEqual(result.merged[0].identity, 1)
        self.assertEqual(result.archived_ids, [2])

    def test_regeneration_is_idempotent(self):
        first = reconcile_variants(generate_combinations(self.options), [])
        existing = stored(first.merged)

        second = reconcile_variants(generate_combinations(self.options), existing)

        self.assertEqual(second.added_count, 0)
        self.assertEqual(second.kept_count, 4)
        self.assertEqual(second.archived_ids, [])
        self.assertEqual([c.name for c in second.merged], [c.name for c in first.merged])
        self.assertEqual([c.identity for c in second.merged], [1, 2, 3, 4])

    def test_signature_collision_is_reported(self):
        # "a|b" + "c" and "a" + "b|c" normalize to the same signature
        generated = generate_combinations([
            OptionGroup('First', ['a|b', 'a']),
            OptionGroup('Second', ['c', 'b|c']),
        ])

        with self.assertLogs('apps.catalog.services.variant_matrix', level='WARNING'):
            result = reconcile_variants(generated, [])

        self.assertEqual(result.collisions, ['a|b|c'])

    def test_no_collisions_for_distinct_signatures(self):
        result = reconcile_variants(generate_combinations(self.options), [])
        self.assertEqual(result.collisions, [])


class AutoSkuTest(SimpleTestCase):
    """Test SKU generation"""

    def test_base_sku(self):
        self.assertEqual(auto_sku('Tote Bag', 'm|black', []), 'TOTEBAG-M-BLACK')

    def test_title_is_cut_to_twenty_characters(self):
        sku = auto_sku('A very long product title indeed', 's', [])
        self.assertEqual(sku, 'AVERYLONGPRODUCTTITL-S')

    def test_suffix_when_taken(self):
        self.assertEqual(auto_sku('Tote Bag', 'm|black', ['TOTEBAG-M-BLACK']), 'TOTEBAG-M-BLACK-2')
        self.assertEqual(
            auto_sku('Tote Bag', 'm|black', {'TOTEBAG-M-BLACK', 'TOTEBAG-M-BLACK-2'}),
            'TOTEBAG-M-BLACK-3'
        )

    def test_gives_up_after_max_attempts(self):
        taken = {'T-A', 'T-A-2', 'T-A-3'}
        with self.assertRaises(SkuGenerationError):
            auto_sku('T', 'a', taken, max_attempts=2)

    def test_title_without_letters_or_digits_is_left_out(self):
        self.assertEqual(auto_sku('!!!', 'm', []), 'M')
        self.assertEqual(auto_sku('!!!', 'm|black', []), 'M-BLACK')

    def test_fallback_when_title_and_signature_are_empty(self):
        self.assertEqual(auto_sku('!!!', '', []), 'SKU')
        self.assertEqual(auto_sku('', '', ['SKU']), 'SKU-2')

    def test_unique_sku(self):
        self.assertEqual(unique_sku('TEE-M-COPY', []), 'TEE-M-COPY')
        self.assertEqual(unique_sku('TEE-M-COPY', ['TEE-M-COPY', 'TEE-M-COPY-2']), 'TEE-M-COPY-3')

    def test_batch_skus_are_unique(self):
        combos = [
            VariantCombination(name='Size: M', signature='m'),
            VariantCombination(name='Size: M', signature='m'),
        ]
        assign_missing_skus('Tee', combos, [])
        self.assertEqual([c.sku for c in combos], ['TEE-M', 'TEE-M-2'])

    def test_typed_skus_are_reserved_first(self):
        combos = [
            VariantCombination(name='Size: M', signature='m'),
            VariantCombination(name='Size: L', signature='l', sku='TEE-M'),
        ]
        assign_missing_skus('Tee', combos, set())
        self.assertEqual(combos[0].sku, 'TEE-M-2')
        self.assertEqual(combos[1].sku, 'TEE-M')

    def test_existing_skus_not_mutated(self):
        existing = {'TEE-M'}
        assign_missing_skus('Tee', [VariantCombination(name='Size: M', signature='m')], existing)
        self.assertEqual(existing, {'TEE-M'})


class StockDeltaTest(SimpleTestCase):

    def test_delta(self):
        self.assertEqual(stock_delta(None, 5), 5)
        self.assertEqual(stock_delta(7, 2), -5)
        self.assertEqual(stock_delta(3, 3), 0)
