"""
Tests for canonical serialization and content hashing.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

import pytest

from pageforge.canon import canonical_json, content_hash, fingerprint_dataset, normalize_expression
from pageforge.models import ItemKind


class TestCanonicalJson:
    """Tests for canonical_json()."""

    def test_sorted_and_compact(self):
        """Keys are sorted and no whitespace is emitted."""
        assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'

    def test_extended_types(self):
        """Enums, dates, decimals, sets and dataclasses serialize."""
        @dataclass
        class Row:
            age: int

        data = {
            "kind": ItemKind.TEXT,
            "day": date(2024, 3, 1),
            "amount": Decimal("1.10"),
            "tags": {"b", "a"},
            "row": Row(age=30),
        }
        assert canonical_json(data) == (
            '{"amount":"1.10","day":"2024-03-01","kind":"text","row":{"age":30},"tags":["a","b"]}'
        )

    def test_unsupported_type(self):
        """Arbitrary objects are not silently stringified."""
        with pytest.raises(TypeError):
            canonical_json({"x": object()})


class TestHashing:
    """Tests for content hashing helpers."""

    def test_key_order_does_not_matter(self):
        """Equal mappings hash equal regardless of insertion order."""
        assert content_hash({"a": 1, "b": 2}) == content_hash({"b": 2, "a": 1})
        assert len(content_hash({})) == 64

    def test_dataset_fingerprint(self):
        """Datasets with equal rows share a fingerprint."""
        rows = [{"age": 30, "wave": 1}]
        assert fingerprint_dataset(rows) == fingerprint_dataset([{"wave": 1, "age": 30}])
        assert fingerprint_dataset(rows) != fingerprint_dataset([{"age": 31, "wave": 1}])

    def test_normalize_expression(self):
        """Whitespace runs collapse; everything else is kept."""
        assert normalize_expression("  wave ==\n\t1 ") == "wave == 1"
        assert normalize_expression("wave==1") == "wave==1"
