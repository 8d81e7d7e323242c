"""Tests for recursive record-array discovery."""

import pytest

from harvester.config.settings import RecordArrayConfig
from harvester.extraction.discovery import find_record_array, looks_like_record_array

LISTINGS = [
    {"id": 1, "price": "£350,000", "displayAddress": "10 High Street"},
    {"id": 2, "price": "£425,000", "displayAddress": "12 High Street"},
]


def _nest(node, depth, key="wrapper"):
    for _ in range(depth):
        node = {key: node}
    return node


class TestLooksLikeRecordArray:
    def test_identifier_and_price(self):
        assert looks_like_record_array([{"id": 1, "price": 5}])

    def test_id_like_key_and_address(self):
        assert looks_like_record_array([{"propertyId": 9, "address": "A"}])

    def test_listing_id_and_display_price(self):
        assert looks_like_record_array([{"listing_id": "z1", "displayPrice": "£1"}])

    def test_identifier_without_payload(self):
        assert not looks_like_record_array([{"id": 1, "name": "x"}])

    def test_payload_without_identifier(self):
        assert not looks_like_record_array([{"price": 5, "address": "A"}])

    @pytest.mark.parametrize("node", [[], [1, 2], {"id": 1, "price": 5}, None, "x"])
    def test_not_record_arrays(self, node):
        assert not looks_like_record_array(node)


class TestFindRecordArray:
    def test_node_itself(self):
        assert find_record_array(LISTINGS) is LISTINGS

    @pytest.mark.parametrize(
        "data",
        [
            {"properties": LISTINGS},
            {"props": {"pageProps": {"searchResults": {"listings": LISTINGS}}}},
            {"unexpected": {"shape": LISTINGS}},
            [{"meta": 1}, {"payload": LISTINGS}],
        ],
    )
    def test_found_regardless_of_key_path(self, data):
        assert find_record_array(data) is LISTINGS

    def test_container_keys_searched_first(self):
        other = [{"id": 99, "price": 1}]
        data = {"aaa": other, "properties": LISTINGS}
        assert find_record_array(data) is LISTINGS

    def test_container_key_priority_order(self):
        other = [{"id": 99, "price": 1}]
        data = {"results": other, "propertyData": LISTINGS}
        assert find_record_array(data) is LISTINGS

    def test_found_at_max_depth(self):
        assert find_record_array(_nest(LISTINGS, 5)) is LISTINGS

    def test_not_found_past_max_depth(self):
        assert find_record_array(_nest(LISTINGS, 6)) is None

    def test_explicit_max_depth(self):
        assert find_record_array(_nest(LISTINGS, 2), max_depth=1) is None
        assert find_record_array(_nest(LISTINGS, 2), max_depth=2) is LISTINGS

    def test_config_max_depth(self):
        config = RecordArrayConfig(max_depth=0)
        assert find_record_array({"properties": LISTINGS}, config=config) is None

    def test_self_referential_terminates(self):
        data = {"meta": {"page": 1}}
        data["self"] = data
        data["meta"]["parent"] = data
        assert find_record_array(data) is None

    def test_self_referential_list_terminates(self):
        data = [{"x": 1}]
        data.append(data)
        assert find_record_array(data) is None

    @pytest.mark.parametrize("data", [None, {}, [], "text", 0])
    def test_empty_or_scalar(self, data):
        assert find_record_array(data) is None
