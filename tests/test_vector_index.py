"""
In-memory vector store tests - cosine scoring, thresholds, ordering and fuzzy matching.
"""

import numpy as np
import pytest

from icp_platform.vector.index import SimpleInMemoryVectorStore, cosine_similarity, fuzzy_match
from icp_platform.vector.types import VectorRecord


def record(record_id, vector, **metadata):
    return VectorRecord(id=record_id, vector=np.array(vector, dtype=float), metadata={"id": record_id, **metadata})


class TestCosineSimilarity:

    def test_identical_vectors_score_one(self):
        assert cosine_similarity([1, 2, 3], [1, 2, 3]) == pytest.approx(1.0)

    def test_opposite_vectors_score_minus_one(self):
        assert cosine_similarity([1, 2, 3], [-1, -2, -3]) == pytest.approx(-1.0)

    def test_orthogonal_vectors_score_zero(self):
        assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)

    def test_zero_norm_scores_zero(self):
        assert cosine_similarity([0, 0, 0], [1, 2, 3]) == 0.0
        assert cosine_similarity([1, 2, 3], [0, 0, 0]) == 0.0

    def test_always_within_bounds(self):
        rng = np.random.default_rng(42)
        for _ in range(200):
            a = rng.normal(size=16) * rng.uniform(1e-6, 1e6)
            b = rng.normal(size=16)
            score = cosine_similarity(a, b)
            assert -1.0 <= score <= 1.0


class TestSimpleInMemoryVectorStore:

    def test_search_orders_by_score(self):
        store = SimpleInMemoryVectorStore()
        store.add(record("far", [0.2, 1.0]))
        store.add(record("near", [1.0, 0.1]))

        results = store.search([1.0, 0.0], top_k=5)

        assert [r.id for r in results] == ["near", "far"]

    def test_threshold_discards_weak_matches(self):
        store = SimpleInMemoryVectorStore()
        store.add(record("match", [1.0, 0.0]))
        store.add(record("weak", [0.3, 1.0]))

        results = store.search([1.0, 0.0], top_k=5, min_score=0.4)

        assert [r.id for r in results] == ["match"]

    def test_ties_keep_insertion_order(self):
        store = SimpleInMemoryVectorStore()
        for name in ["c", "a", "b"]:
            store.add(record(name, [1.0, 1.0]))

        results = store.search([1.0, 1.0], top_k=5)

        assert [r.id for r in results] == ["c", "a", "b"]

    def test_filters_apply_before_scoring(self):
        store = SimpleInMemoryVectorStore()
        store.add(record("mature", [1.0, 0.0], status="MATURE"))
        store.add(record("proposed", [1.0, 0.0], status="PROPOSED"))

        results = store.search([1.0, 0.0], top_k=5, filters={"status": "MATURE"})

        assert [r.id for r in results] == ["mature"]

    def test_truncates_to_top_k(self):
        store = SimpleInMemoryVectorStore()
        for i in range(10):
            store.add(record(f"r{i}", [1.0, i / 10]))

        assert len(store.search([1.0, 0.0], top_k=3)) == 3

    def test_replace_keeps_one_entry(self):
        store = SimpleInMemoryVectorStore()
        store.add(record("x", [1.0, 0.0], name="old"))
        store.add(record("x", [0.0, 1.0], name="new"))

        assert len(store) == 1
        assert store.get("x").metadata["name"] == "new"
        assert store.search([0.0, 1.0], top_k=1)[0].id == "x"

    def test_zero_query_vector_matches_nothing_above_threshold(self):
        store = SimpleInMemoryVectorStore()
        store.add(record("x", [1.0, 0.0]))

        assert store.search([0.0, 0.0], top_k=5, min_score=0.4) == []

    def test_delete_and_clear(self):
        store = SimpleInMemoryVectorStore()
        store.add(record("x", [1.0, 0.0]))
        store.add(record("y", [0.0, 1.0]))

        store.delete("x")
        assert "x" not in store
        store.delete("missing")

        store.clear()
        assert len(store) == 0


class TestFuzzyMatch:

    @pytest.fixture
    def rows(self):
        return [
            {"id": "1", "name": "C++ (beta) toolkit", "summary": "", "domain": "Education"},
            {"id": "2", "name": "Solar Lamp", "summary": "Light for study", "domain": "Energy"},
            {"id": "3", "name": "Water Filter", "summary": "Clean water", "domain": "Water"},
        ]

    def test_case_insensitive_substring(self, rows):
        results = fuzzy_match(rows, "wAtEr", ("name", "summary", "domain"), 10)
        assert [r.id for r in results] == ["3"]
        assert results[0].score == 1.0

    def test_regex_metacharacters_match_literally(self, rows):
        results = fuzzy_match(rows, "C++ (beta)", ("name",), 10)
        assert [r.id for r in results] == ["1"]

    def test_wildcard_pattern_does_not_match_everything(self, rows):
        assert fuzzy_match(rows, ".*", ("name", "summary", "domain"), 10) == []

    def test_unbalanced_pattern_does_not_raise(self, rows):
        assert fuzzy_match(rows, "[(", ("name",), 10) == []

    def test_filters_and_limit(self, rows):
        results = fuzzy_match(rows, "e", ("name", "summary", "domain"), 1, {"domain": "Energy"})
        assert [r.id for r in results] == ["2"]

    def test_missing_fields_are_skipped(self):
        results = fuzzy_match([{"id": "1", "name": None}], "x", ("name", "summary"), 5)
        assert results == []
