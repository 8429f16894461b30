"""
Helpers to read structure back out of variant display names.

Variant names are stored as "Color: Orange / Size: M". These helpers parse them
and order the option names by the organization's ranking (Rank1, Rank2) so the
inventory screens can nest variants, e.g. Color -> Size.
"""

from typing import Dict, List, Optional, Tuple

from .variant_matrix import NAME_SEPARATOR


def parse_variant_name(variant_name: Optional[str]) -> List[Tuple[str, str]]:
    """
    Parse a variant name into (option, value) pairs.

    Example:
        parse_variant_name("Color: Orange / Size: M")
        -> [('Color', 'Orange'), ('Size', 'M')]

    Segments without a colon, or with an empty option or value, are skipped.
    """
    if not variant_name or not variant_name.strip():
        return []

    options = []
    for pair in variant_name.split(NAME_SEPARATOR.strip()):
        pair = pair.strip()
        if ':' not in pair:
            continue
        name, value = pair.split(':', 1)
        name, value = name.strip(), value.strip()
        if name and value:
            options.append((name, value))
    return options


def unique_option_names(variant_names: List[str]) -> List[str]:
    """Option names in first-seen order across all variant names."""
    names = []
    for variant_name in variant_names:
        for name, _ in parse_variant_name(variant_name):
            if name not in names:
                names.append(name)
    return names


def variant_option_value(variant_name: str, option_name: str) -> Optional[str]:
    for name, value in parse_variant_name(variant_name):
        if name == option_name:
            return value
    return None


def group_variants_by_option(variant_names: List[str], option_name: str) -> Dict[str, List[str]]:
    """
    Group variant names by their value for one option.

    Example:
        group_variants_by_option(
            ["Color: Orange / Size: M", "Color: Orange / Size: L", "Color: Blue / Size: M"],
            "Color"
        )
        -> {"Orange": [... M, ... L], "Blue": [... M]}

    Variants that lack the option are left out.
    """
    groups = {}
    for variant_name in variant_names:
        value = variant_option_value(variant_name, option_name)
        if value:
            groups.setdefault(value, []).append(variant_name)
    return groups


def sort_option_names(option_names: List[str], custom_order: List[str]) -> List[str]:
    """Ranked names first in rank order, the rest alphabetically."""
    ranks = {name: index for index, name in enumerate(custom_order)}
    ranked = sorted((n for n in option_names if n in ranks), key=lambda n: ranks[n])
    unranked = sorted(n for n in option_names if n not in ranks)
    return ranked + unranked


def variant_hierarchy(variant_names: List[str], custom_order: Optional[List[str]] = None) -> List[str]:
    return sort_option_names(unique_option_names(variant_names), custom_order or [])


def build_variant_tree(variants, custom_order=None):
    """
    Nest variants by the first two hierarchy levels.

    ``variants`` is any iterable of objects with a ``name`` attribute. Returns
    the level names and a list of nodes:
        [{'value': 'Orange', 'children': [{'value': 'M', 'variants': [...]}]}]
    Variants missing a level value are grouped under an empty string.
    """
    variants = list(variants)
    levels = variant_hierarchy([v.name for v in variants], custom_order)[:2]
    if not levels:
        return levels, [{'value': '', 'children': [], 'variants': variants}]

    tree = {}
    for variant in variants:
        top = variant_option_value(variant.name, levels[0]) or ''
        node = tree.setdefault(top, {'value': top, 'children': {}, 'variants': []})
        if len(levels) < 2:
            node['variants'].append(variant)
            continue
        sub = variant_option_value(variant.name, levels[1]) or ''
        child = node['children'].setdefault(sub, {'value': sub, 'variants': []})
        child['variants'].append(variant)

    nodes = []
    for node in tree.values():
        node['children'] = list(node['children'].values())
        nodes.append(node)
    return levels, nodes
