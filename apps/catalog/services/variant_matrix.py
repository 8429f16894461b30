"""
Variant matrix generation and reconciliation.

Pure functions that turn a list of option groups (Size, Color, ...) into the
variant combinations of a product, and diff a fresh generation against the
variants already stored.

Identity of a variant across regenerations is its *signature*: the normalized
option values joined in option order. Display names are rebuilt on every
generation, so renaming an option group ("Color" -> "Colour") keeps SKU, price
and stock of every surviving combination.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Iterable, List, Optional

logger = logging.getLogger(__name__)

SIGNATURE_SEPARATOR = '|'
NAME_SEPARATOR = ' / '
SKU_TITLE_LENGTH = 20
SKU_MAX_ATTEMPTS = 10000
SKU_FALLBACK = 'SKU'


class SkuGenerationError(Exception):
    """Raised when no free SKU is found within the attempt limit."""


@dataclass
class OptionGroup:
    name: str
    values: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data):
        return cls(
            name=str(data.get('name') or ''),
            values=[str(v) for v in (data.get('values') or [])],
        )

    def to_dict(self):
        return {'name': self.name.strip(), 'values': [v.strip() for v in self.values if v.strip()]}

    @property
    def clean_values(self):
        return [v.strip() for v in self.values if v and v.strip()]


@dataclass
class VariantCombination:
    name: str
    signature: str
    sku: str = ''
    price: Optional[Decimal] = None
    active: bool = True
    stock: Optional[int] = None
    identity: Any = None
    is_new: bool = True


@dataclass
class ValidationResult:
    ok: bool
    message: str = ''

    def __bool__(self):
        return self.ok


@dataclass
class ReconcileResult:
    merged: List[VariantCombination]
    added_count: int = 0
    kept_count: int = 0
    archived_ids: List[Any] = field(default_factory=list)
    collisions: List[str] = field(default_factory=list)

    @property
    def archived_count(self):
        return len(self.archived_ids)


def normalize_value(value):
    return str(value).strip().lower()


def to_price(value):
    """Coerce a user supplied price to Decimal, blank meaning no price."""
    if value is None or isinstance(value, Decimal):
        return value
    value = str(value).strip()
    if not value:
        return None
    return Decimal(value)


# =============================================================================
# Validation
# =============================================================================

def validate_options(options: Iterable[OptionGroup]) -> ValidationResult:
    """
    Check option groups before generating combinations.

    An empty list is valid (the product has no variants). Returns a
    ValidationResult instead of raising so callers decide whether to block.
    """
    seen_names = set()
    for group in options:
        name = (group.name or '').strip()
        if not name:
            return ValidationResult(False, 'Option name is required')

        if name.lower() in seen_names:
            return ValidationResult(False, f'Option "{name}" is defined more than once')
        seen_names.add(name.lower())

        values = group.clean_values
        if not values:
            return ValidationResult(False, f'Option "{name}" needs at least one value')

        normalized = [normalize_value(v) for v in values]
        if len(set(normalized)) != len(normalized):
            return ValidationResult(False, f'Option "{name}" has duplicate values')

    return ValidationResult(True)


# =============================================================================
# Signatures
# =============================================================================

def variant_signature(values: Iterable[str]) -> str:
    """
    Build the identity key of a variant from its option values.

    Example:
        variant_signature([' M ', 'Black']) -> 'm|black'
    """
    normalized = (normalize_value(v) for v in values)
    return SIGNATURE_SEPARATOR.join(v for v in normalized if v)


def signature_from_name(name: Optional[str]) -> str:
    """
    Recover a signature from a stored display name.

    Example:
        signature_from_name('Size: M / Color: Black') -> 'm|black'
    """
    if not name:
        return ''
    values = []
    for segment in name.split(NAME_SEPARATOR):
        if ':' not in segment:
            continue
        values.append(segment.split(':', 1)[1])
    return variant_signature(values)


def combination_name(option_names, values):
    return NAME_SEPARATOR.join(
        f'{option_name}: {value}' for option_name, value in zip(option_names, values)
    )


# =============================================================================
# Generation
# =============================================================================

def generate_combinations(
    options: Iterable[OptionGroup],
    default_price: Any = None
) -> List[VariantCombination]:
    """
    Expand option groups into every value combination.

    The first group varies slowest:
        Size[S, M] x Color[Red, Blue] ->
        S/Red, S/Blue, M/Red, M/Blue
    """
    groups = [g for g in options if g.clean_values]
    if not groups:
        return []

    combos = [[]]
    for group in groups:
        combos = [partial + [value] for partial in combos for value in group.clean_values]

    option_names = [g.name.strip() for g in groups]
    price = to_price(default_price)
    return [
        VariantCombination(
            name=combination_name(option_names, values),
            signature=variant_signature(values),
            sku='',
            price=price,
            active=True,
            is_new=True,
        )
        for values in combos
    ]


# =============================================================================
# Reconciliation
# =============================================================================

def reconcile_variants(
    generated: List[VariantCombination],
    existing: List[VariantCombination]
) -> ReconcileResult:
    """
    Diff freshly generated combinations against the stored ones.

    Matched entries (same signature) keep identity, sku, price, active flag and
    stock of the stored record and take the new name. Stored entries whose
    signature is no longer generated are reported in ``archived_ids``; nothing
    is mutated here.
    """
    index = {}
    archived_ids = []
    for entry in existing:
        signature = entry.signature or signature_from_name(entry.name)
        if signature in index:
            # A second live record for one signature; retire it.
            if entry.identity is not None:
                archived_ids.append(entry.identity)
            continue
        index[signature] = entry

    merged = []
    matched = set()
    generated_signatures = set()
    collisions = []
    added_count = 0
    kept_count = 0

    for entry in generated:
        if entry.signature in generated_signatures and entry.signature not in collisions:
            collisions.append(entry.signature)
        generated_signatures.add(entry.signature)

        previous = index.get(entry.signature)
        if previous is None:
            merged.append(replace(entry))
            added_count += 1
            continue

        matched.add(entry.signature)
        merged.append(replace(
            previous,
            name=entry.name,
            signature=entry.signature,
            is_new=False,
        ))
        kept_count += 1

    for signature, entry in index.items():
        if signature not in matched and entry.identity is not None:
            archived_ids.append(entry.identity)

    if collisions:
        logger.warning(
            "Variant signatures generated more than once: %s", ', '.join(collisions)
        )

    return ReconcileResult(
        merged=merged,
        added_count=added_count,
        kept_count=kept_count,
        archived_ids=archived_ids,
        collisions=collisions,
    )


# =============================================================================
# SKUs
# =============================================================================

def sku_title_slug(product_title):
    return re.sub(r'[^A-Z0-9]', '', (product_title or '').upper())[:SKU_TITLE_LENGTH]


def auto_sku(
    product_title: str,
    signature: str,
    existing_skus: Iterable[str],
    max_attempts: int = SKU_MAX_ATTEMPTS
) -> str:
    """
    Derive a readable SKU for a variant left blank by the user.

    Example:
        auto_sku('Tote Bag', 'm|black', []) -> 'TOTEBAG-M-BLACK'
        auto_sku('Tote Bag', 'm|black', ['TOTEBAG-M-BLACK']) -> 'TOTEBAG-M-BLACK-2'

    Empty parts are left out, so a title without letters or digits gives
    'M-BLACK' and the option-less variant gives 'TOTEBAG'. When both are
    empty the base is 'SKU'.

    The caller adds each returned SKU to ``existing_skus`` before asking for the
    next one of the same batch.
    """
    parts = [sku_title_slug(product_title), signature.upper().replace(SIGNATURE_SEPARATOR, '-')]
    base = '-'.join(part for part in parts if part) or SKU_FALLBACK
    return unique_sku(base, existing_skus, max_attempts=max_attempts)


def unique_sku(
    base: str,
    existing_skus: Iterable[str],
    max_attempts: int = SKU_MAX_ATTEMPTS
) -> str:
    """``base`` itself when free, else the first free ``base-N`` with N from 2."""
    taken = existing_skus if isinstance(existing_skus, (set, frozenset)) else set(existing_skus)
    if base not in taken:
        return base

    for suffix in range(2, max_attempts + 2):
        candidate = f'{base}-{suffix}'
        if candidate not in taken:
            return candidate

    raise SkuGenerationError(f'Could not generate a unique SKU for "{base}"')


def assign_missing_skus(
    product_title: str,
    combinations: List[VariantCombination],
    existing_skus: Iterable[str],
    max_attempts: int = SKU_MAX_ATTEMPTS
) -> List[VariantCombination]:
    """
    Fill blank SKUs of a batch in place.

    ``existing_skus`` is copied; SKUs already present in the batch are reserved
    first so a generated SKU never shadows one typed by the user.
    """
    taken = set(existing_skus)
    taken.update(c.sku for c in combinations if c.sku)

    for combination in combinations:
        if combination.sku:
            continue
        combination.sku = auto_sku(
            product_title, combination.signature, taken, max_attempts=max_attempts
        )
        taken.add(combination.sku)
    return combinations


def stock_delta(current: Optional[int], target: int) -> int:
    """Movement needed to bring a stock level from ``current`` to ``target``."""
    return int(target) - int(current or 0)


def options_from_payload(payload):
    return [OptionGroup.from_dict(item) for item in (payload or [])]
