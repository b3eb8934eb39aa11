import pytest
from pydantic import ValidationError

from fusion_operations.config import (
    DistanceType,
    HybridQueryConfig,
    HybridQueryParams,
    RerankMethod,
    VectorSearchParams,
)
from fusion_operations.core.fusion_ops_exceptions import InvalidParameterError
from fusion_operations.reranking import LinearCombinationReranker, MRRReranker, RRFReranker
from tests.conftest import FakeExecutor, empty_batch


class TestVectorSearchParams:
    def test_defaults_leave_engine_defaults(self):
        params = VectorSearchParams()
        assert params.distance_type is None
        assert params.nprobes is None
        assert params.additional_vectors == []

    def test_distance_type_from_string(self):
        assert VectorSearchParams(distance_type="dot").distance_type == DistanceType.DOT

    def test_unknown_distance_type(self):
        with pytest.raises(InvalidParameterError, match="manhattan"):
            VectorSearchParams(distance_type="manhattan")

    @pytest.mark.parametrize("name", ["nprobes", "refine_factor", "ef", "minimum_nprobes", "maximum_nprobes"])
    def test_non_positive_tuning(self, name):
        with pytest.raises(InvalidParameterError, match=name):
            VectorSearchParams(**{name: 0})

    def test_nprobes_bounds_order(self):
        with pytest.raises(InvalidParameterError):
            VectorSearchParams(minimum_nprobes=20, maximum_nprobes=10)

    def test_distance_range_order(self):
        with pytest.raises(InvalidParameterError):
            VectorSearchParams(distance_range=(0.5, 0.1))
        assert VectorSearchParams(distance_range=(None, 0.1)).distance_range == (None, 0.1)


class TestHybridQueryConfig:
    def test_invalid_window(self):
        with pytest.raises(InvalidParameterError):
            HybridQueryConfig(limit=-1)
        with pytest.raises(InvalidParameterError):
            HybridQueryConfig(offset=-1)
        with pytest.raises(InvalidParameterError):
            HybridQueryConfig(sub_search_limit=0)

    def test_invalid_parameter_is_value_error(self):
        with pytest.raises(ValueError):
            HybridQueryConfig(limit=-5)


class TestHybridQueryParams:
    def test_minimal_request(self):
        params = HybridQueryParams(query="puppy", vector=[0.1, 0.2])

        assert params.rerank_method == RerankMethod.RRF
        assert params.limit is None
        assert params.with_row_id is True

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            HybridQueryParams(query="puppy", vector=[0.1], top_k=10)

    def test_rejects_empty_vector(self):
        with pytest.raises(ValidationError):
            HybridQueryParams(query="puppy", vector=[])

    def test_rejects_negative_limit(self):
        with pytest.raises(ValidationError):
            HybridQueryParams(query="puppy", vector=[0.1], limit=-1)

    def test_rejects_mismatched_additional_vector(self):
        with pytest.raises(ValidationError, match="dimension"):
            HybridQueryParams(query="puppy", vector=[0.1, 0.2], additional_vectors=[[0.1]])

    def test_rejects_mrr_weights_not_summing_to_one(self):
        with pytest.raises(ValidationError, match="sum to 1.0"):
            HybridQueryParams(
                query="puppy", vector=[0.1], rerank_method="mrr",
                mrr_weight_vector=0.7, mrr_weight_fts=0.7,
            )

    def test_to_config(self):
        params = HybridQueryParams(
            query="puppy",
            vector=[0.1, 0.2],
            filter="age > 2",
            select=["text"],
            limit=5,
            offset=1,
            distance_type="l2",
            nprobes=8,
            distance_range=[0.0, 0.5],
        )

        config = params.to_config()

        assert config.predicate == "age > 2"
        assert config.select == ["text"]
        assert (config.limit, config.offset) == (5, 1)
        assert config.vector.distance_type == DistanceType.L2
        assert config.vector.nprobes == 8
        assert config.vector.distance_range == (0.0, 0.5)

    @pytest.mark.parametrize(
        "extra, expected",
        [
            ({}, RRFReranker(k=60.0)),
            ({"rerank_method": "rrf", "rrf_k": 5}, RRFReranker(k=5)),
            ({"rerank_method": "linear", "linear_weight": 0.2}, LinearCombinationReranker(weight=0.2)),
            ({"rerank_method": "mrr", "mrr_weight_vector": 0.4, "mrr_weight_fts": 0.6},
             MRRReranker(weight_vector=0.4, weight_fts=0.6)),
        ],
    )
    def test_build(self, extra, expected):
        executor = FakeExecutor(empty_batch("_distance"), empty_batch("_score"))
        params = HybridQueryParams(query="puppy", vector=[0.1, 0.2], limit=3, timeout=2.5, **extra)

        query = params.build(executor, concurrent=False)

        assert query.reranker == expected
        assert query.config.limit == 3
        assert query.timeout == 2.5
        assert query.concurrent is False
