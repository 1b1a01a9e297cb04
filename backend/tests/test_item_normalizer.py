# Overview: Pytest coverage for upstream line-item normalization and aggregation.

import json

from orderflow.services.item_normalizer import (
    OrderItem,
    aggregate_items,
    deserialize_items,
    normalize_item,
    normalize_items,
    serialize_items,
)


class TestItemCollection:
    """Where the item list is found."""

    def test_meta_sizes_and_attribute_technique(self):
        items = normalize_items([
            {"sku": "VJ1", "meta_data": [{"key": "pa_sizes", "value": "L"}]},
            {"sku": "VJ2", "attributes": [{"name": "Technique", "option": "emb"}]},
        ])
        aggregate = aggregate_items(items)

        assert aggregate.sizes == "L"
        assert aggregate.technique == "emb"
        assert aggregate.quantity == 2
        assert aggregate.sku == "VJ1 | VJ2"

    def test_json_encoded_payload(self):
        payload = json.dumps({"line_items": [{"name": "Away Kit", "qty": "3"}]})
        items = normalize_items(payload)
        assert items == [OrderItem(name="Away Kit", quantity=3)]

    def test_nested_under_wrapper_key(self):
        payload = {"order": {"items": [{"sku": "A1", "title": "Retro"}]}}
        items = normalize_items(payload)
        assert [(i.sku, i.name) for i in items] == [("A1", "Retro")]

    def test_json_encoded_collection_inside_wrapper(self):
        payload = {"data": {"products": '[{"sku": "B7"}]'}}
        assert [i.sku for i in normalize_items(payload)] == ["B7"]

    def test_id_keyed_mapping_of_items(self):
        payload = {"line_items": {"11": {"sku": "A"}, "12": {"sku": "B"}}}
        assert [i.sku for i in normalize_items(payload)] == ["A", "B"]

    def test_unrecognised_payload_yields_empty_list(self):
        assert normalize_items(None) == []
        assert normalize_items("not json at all") == []
        assert normalize_items({"total": "500"}) == []
        assert normalize_items({"line_items": []}) == []


class TestItemFields:
    """How each field of one item resolves."""

    def test_every_input_item_produces_a_complete_item(self):
        raw = [{}, "Plain Jersey", {"quantity": "abc", "sku": "X"}, {"quantity": 0}]
        items = normalize_items(raw)

        assert len(items) == 4
        for item in items:
            assert isinstance(item.sku, str)
            assert isinstance(item.size, str)
            assert isinstance(item.technique, str)
            assert item.quantity >= 1
        assert items[1].name == "Plain Jersey"
        assert items[2].sku == "X"
        assert items[2].quantity == 1

    def test_numeric_values_become_text(self):
        item = normalize_item({"sku": 12345, "quantity": 2.0})
        assert item.sku == "12345"
        assert item.quantity == 2

    def test_first_matching_meta_key_wins(self):
        item = normalize_item({"meta_data": [
            {"key": "size", "value": "M"},
            {"key": "pa_size", "value": "XL"},
        ]})
        assert item.size == "M"

    def test_empty_meta_value_falls_through_to_next_match(self):
        item = normalize_item({"meta_data": [
            {"key": "size", "value": ""},
            {"key": "size_chart", "value": "S"},
        ]})
        assert item.size == "S"

    def test_meta_takes_priority_over_attributes(self):
        item = normalize_item({
            "meta_data": [{"key": "Size", "value": "M"}],
            "attributes": [{"name": "Size", "option": "L"}],
        })
        assert item.size == "M"

    def test_meta_as_plain_mapping(self):
        item = normalize_item({"meta": {"Size": "S", "Print Technique": "DTF"}})
        assert item.size == "S"
        assert item.technique == "DTF"

    def test_free_text_fallback(self):
        item = normalize_item({"name": "Jersey", "description": "Size: XL, Technique = sublimation"})
        assert item.size == "XL"
        assert item.technique == "sublimation"

    def test_woocommerce_meta_entry(self):
        item = normalize_item({
            "name": "Home Jersey",
            "sku": "VJ-HOME",
            "quantity": 1,
            "meta_data": [
                {"id": 9, "key": "pa_size", "value": "m", "display_key": "Size", "display_value": "M"},
            ],
        })
        assert item == OrderItem(sku="VJ-HOME", name="Home Jersey", quantity=1, size="m", technique="")


class TestAggregation:

    def test_empty_values_skipped_and_attributes_deduplicated(self):
        items = [
            OrderItem(sku="A", name="Home", quantity=1, size="L", technique="emb"),
            OrderItem(sku="", name="", quantity=2, size="L", technique=""),
            OrderItem(sku="C", name="Away", quantity=1, size="M", technique="emb"),
        ]
        aggregate = aggregate_items(items)

        assert aggregate.product == "Home | Away"
        assert aggregate.sku == "A | C"
        assert aggregate.sizes == "L, M"
        assert aggregate.technique == "emb"
        assert aggregate.quantity == 4

    def test_no_items(self):
        aggregate = aggregate_items([])
        assert aggregate.product == ""
        assert aggregate.quantity == 1

    def test_stored_items_keep_size_and_technique(self):
        items = [OrderItem(sku="A", name="Home", quantity=2, size="XL", technique="DTF")]
        assert deserialize_items(serialize_items(items)) == items
        assert deserialize_items("") == []
        assert deserialize_items("[1, {\"sku\": \"B\", \"extra\": true}]") == [OrderItem(sku="B")]
