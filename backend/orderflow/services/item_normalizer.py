# Overview: Pure parsing of upstream order line items into canonical items and display aggregates.

"""
Order Item Normalizer

================================================================================
PURPOSE: Turn whatever the commerce platform sent into a list of OrderItem
================================================================================

WHY THIS EXISTS:
- Webhook payloads differ between plugin versions and manual re-sends
- The item list may be under different keys, JSON-encoded, or nested one level
- Size/technique arrive as meta pairs, attribute entries, or free text

HOW:
Every lookup is an extractor: a callable taking a source and returning
(found, value). Extractors are composed with `first_of`, which runs them in
priority order and stops at the first hit. Adding a new upstream shape means
adding an extractor to the right chain, not another branch.

RULES:
1. The normalizer never raises; unresolved fields fall back to "" / 1
2. Fields resolve independently (a bad quantity does not drop the sku)
3. For size/technique the FIRST matching key wins, later duplicates are ignored
4. Item order is preserved
================================================================================
"""

from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, fields
from typing import Any, Callable, Iterable, Iterator

Found = tuple[bool, Any]
Extractor = Callable[[Any], Found]

MISSING: Found = (False, None)

ITEM_COLLECTION_KEYS = ("line_items", "items", "products", "order_items")
WRAPPER_KEYS = ("order", "data", "payload", "body")

NAME_KEYS = ("name", "title", "product_name", "label")
SKU_KEYS = ("sku", "SKU", "product_sku", "variation_sku", "item_sku")
QUANTITY_KEYS = ("quantity", "qty", "count", "quantity_ordered")

META_KEYS = ("meta_data", "meta", "metadata", "item_meta")
META_KEY_FIELDS = ("key", "name", "display_key")
META_VALUE_FIELDS = ("value", "display_value", "option", "label")

ATTRIBUTE_KEYS = ("attributes", "variation", "variations", "variation_attributes")
ATTRIBUTE_KEY_FIELDS = ("name", "attribute", "key", "slug")
ATTRIBUTE_VALUE_FIELDS = ("option", "value", "display_value", "label")

FREE_TEXT_KEYS = ("description", "note", "notes", "variation_text", "summary", "customer_note")

PRODUCT_SEPARATOR = " | "
ATTRIBUTE_SEPARATOR = ", "


@dataclass(frozen=True)
class OrderItem:
    """One canonical line item. size/technique are always strings."""
    sku: str = ""
    name: str = ""
    quantity: int = 1
    size: str = ""
    technique: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ItemAggregate:
    """Flattened display fields stored on the order row."""
    product: str
    sku: str
    sizes: str
    technique: str
    quantity: int

    def to_dict(self) -> dict:
        return asdict(self)


# =============================================================================
# EXTRACTOR COMBINATORS
# =============================================================================

def first_of(*extractors: Extractor) -> Extractor:
    """Run extractors in order; the first (True, value) wins."""
    def run(source: Any) -> Found:
        for extractor in extractors:
            found, value = extractor(source)
            if found:
                return found, value
        return MISSING
    return run


def coerced(key: str, coerce: Callable[[Any], Any]) -> Extractor:
    """Look up `key` in a mapping and accept it only if `coerce` yields a non-None value."""
    def run(source: Any) -> Found:
        if not isinstance(source, dict) or key not in source:
            return MISSING
        value = coerce(source[key])
        if value is None:
            return MISSING
        return True, value
    return run


def any_key(keys: Iterable[str], coerce: Callable[[Any], Any]) -> Extractor:
    return first_of(*(coerced(k, coerce) for k in keys))


def resolve(extractor: Extractor, source: Any, default: Any) -> Any:
    found, value = extractor(source)
    return value if found else default


# =============================================================================
# COERCION
# =============================================================================

def decode_json(value: Any) -> Any:
    """Decode JSON-encoded strings; anything else is returned unchanged."""
    if isinstance(value, (str, bytes)):
        text = value.strip() if isinstance(value, str) else value.decode("utf-8", "replace").strip()
        if text[:1] in ("[", "{"):
            try:
                return json.loads(text)
            except ValueError:
                return value
    return value


def to_text(value: Any) -> str | None:
    """Scalar -> stripped text; lists yield their first usable element."""
    if value is None or isinstance(value, (bool, dict)):
        return None
    if isinstance(value, (list, tuple)):
        for element in value:
            text = to_text(element)
            if text:
                return text
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def to_positive_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 1 else None
    try:
        number = int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return None
    return number if number >= 1 else None


def to_item_list(value: Any) -> list | None:
    """Accept a non-empty list, a JSON string of one, or an id-keyed mapping of item dicts."""
    value = decode_json(value)
    if isinstance(value, list):
        return value or None
    if isinstance(value, dict) and value and all(isinstance(v, dict) for v in value.values()):
        return list(value.values())
    return None


# =============================================================================
# ITEM COLLECTION
# =============================================================================

def _nested(wrapper: str, inner: Extractor) -> Extractor:
    def run(source: Any) -> Found:
        if not isinstance(source, dict):
            return MISSING
        return inner(decode_json(source.get(wrapper)))
    return run


_top_level_items = any_key(ITEM_COLLECTION_KEYS, to_item_list)

resolve_item_collection: Extractor = first_of(
    _top_level_items,
    *(_nested(wrapper, _top_level_items) for wrapper in WRAPPER_KEYS),
)


# =============================================================================
# SIZE / TECHNIQUE
# =============================================================================

def _pairs(structure: Any, key_fields: tuple[str, ...], value_fields: tuple[str, ...]) -> Iterator[tuple[str, Any]]:
    """Yield (lowercased key, raw value) pairs from a list of entries or a plain mapping."""
    structure = decode_json(structure)
    if isinstance(structure, dict):
        for key, value in structure.items():
            yield str(key).lower(), value
        return
    if not isinstance(structure, list):
        return
    for entry in structure:
        if not isinstance(entry, dict):
            continue
        key = resolve(any_key(key_fields, to_text), entry, "")
        value = resolve(any_key(value_fields, to_text), entry, None)
        yield key.lower(), value


def _labelled(structure_keys: tuple[str, ...], key_fields, value_fields, label: str) -> Extractor:
    """First entry whose key mentions `label` and carries a usable value."""
    def run(item: Any) -> Found:
        if not isinstance(item, dict):
            return MISSING
        for structure_key in structure_keys:
            for key, value in _pairs(item.get(structure_key), key_fields, value_fields):
                if label not in key:
                    continue
                text = to_text(value)
                if text:
                    return True, text
        return MISSING
    return run


def _in_free_text(label: str) -> Extractor:
    pattern = re.compile(rf"\b{label}s?\s*[:=]\s*([^,;|\n]+)", re.IGNORECASE)

    def run(item: Any) -> Found:
        if not isinstance(item, dict):
            return MISSING
        for key in FREE_TEXT_KEYS:
            text = to_text(item.get(key))
            if not text:
                continue
            match = pattern.search(text)
            if match and match.group(1).strip():
                return True, match.group(1).strip()
        return MISSING
    return run


def _attribute_chain(label: str) -> Extractor:
    return first_of(
        _labelled(META_KEYS, META_KEY_FIELDS, META_VALUE_FIELDS, label),
        _labelled(ATTRIBUTE_KEYS, ATTRIBUTE_KEY_FIELDS, ATTRIBUTE_VALUE_FIELDS, label),
        _in_free_text(label),
    )


resolve_name = any_key(NAME_KEYS, to_text)
resolve_sku = any_key(SKU_KEYS, to_text)
resolve_quantity = any_key(QUANTITY_KEYS, to_positive_int)
resolve_size = _attribute_chain("size")
resolve_technique = _attribute_chain("technique")


# =============================================================================
# PUBLIC API
# =============================================================================

def normalize_item(raw: Any) -> OrderItem:
    raw = decode_json(raw)
    if not isinstance(raw, dict):
        return OrderItem(name=to_text(raw) or "")
    return OrderItem(
        sku=resolve(resolve_sku, raw, ""),
        name=resolve(resolve_name, raw, ""),
        quantity=resolve(resolve_quantity, raw, 1),
        size=resolve(resolve_size, raw, ""),
        technique=resolve(resolve_technique, raw, ""),
    )


def normalize_items(payload: Any) -> list[OrderItem]:
    """
    Normalize an order payload (or a bare item list) into OrderItems.

    Never raises: an unrecognised payload yields an empty list and every
    unresolved field its default.
    """
    payload = decode_json(payload)
    if isinstance(payload, list):
        raw_items = payload
    else:
        raw_items = resolve(resolve_item_collection, payload, [])
    return [normalize_item(raw) for raw in raw_items]


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(v for v in values if v))


def aggregate_items(items: list[OrderItem]) -> ItemAggregate:
    return ItemAggregate(
        product=PRODUCT_SEPARATOR.join(i.name for i in items if i.name),
        sku=PRODUCT_SEPARATOR.join(i.sku for i in items if i.sku),
        sizes=ATTRIBUTE_SEPARATOR.join(_unique(i.size for i in items)),
        technique=ATTRIBUTE_SEPARATOR.join(_unique(i.technique for i in items)),
        quantity=max(1, sum(i.quantity for i in items)),
    )


def serialize_items(items: list[OrderItem]) -> str:
    return json.dumps([i.to_dict() for i in items], separators=(",", ":"), ensure_ascii=False)


def deserialize_items(value: Any) -> list[OrderItem]:
    """Inverse of serialize_items; unknown keys are dropped."""
    value = decode_json(value)
    if not isinstance(value, list):
        return []
    known = {f.name for f in fields(OrderItem)}
    return [
        OrderItem(**{k: v for k, v in raw.items() if k in known})
        for raw in value
        if isinstance(raw, dict)
    ]
