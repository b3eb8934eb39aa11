import pytest

from config.settings import RerankerSettings
from fusion_operations.config.base import RerankMethod
from fusion_operations.core.fusion_ops_exceptions import InvalidParameterError
from fusion_operations.reranking import (
    LinearCombinationReranker,
    MRRReranker,
    RRFReranker,
    create_reranker,
    create_reranker_from_settings,
)


class TestCreateReranker:
    def test_default_is_rrf(self):
        reranker = create_reranker()
        assert isinstance(reranker, RRFReranker)
        assert reranker.k == 60.0

    @pytest.mark.parametrize(
        "method, params, expected",
        [
            ("rrf", {"k": 10}, RRFReranker),
            ("linear", {"weight": 0.4, "fill": 0.5}, LinearCombinationReranker),
            (RerankMethod.MRR, {"weight_vector": 0.2, "weight_fts": 0.8}, MRRReranker),
        ],
    )
    def test_by_method(self, method, params, expected):
        reranker = create_reranker(method, **params)

        assert isinstance(reranker, expected)
        for name, value in params.items():
            assert getattr(reranker, name) == value

    def test_unknown_method(self):
        with pytest.raises(InvalidParameterError, match="Unsupported rerank method"):
            create_reranker("borda")

    def test_unknown_parameter(self):
        with pytest.raises(InvalidParameterError, match="rrf"):
            create_reranker("rrf", weight=0.5)

    def test_invalid_parameter_value(self):
        with pytest.raises(InvalidParameterError):
            create_reranker("linear", weight=2.0)


class TestCreateRerankerFromSettings:
    def test_rrf(self):
        reranker = create_reranker_from_settings(RerankerSettings(method="rrf", rrf_k=5))
        assert reranker == RRFReranker(k=5)

    def test_linear(self):
        settings = RerankerSettings(method="linear", linear_weight=0.3, linear_fill=0.5)
        assert create_reranker_from_settings(settings) == LinearCombinationReranker(weight=0.3, fill=0.5)

    def test_mrr(self):
        settings = RerankerSettings(method="mrr", mrr_weight_vector=0.25, mrr_weight_fts=0.75)
        assert create_reranker_from_settings(settings) == MRRReranker(weight_vector=0.25, weight_fts=0.75)
