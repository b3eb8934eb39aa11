"""
Example usage of the fusion operations module.

This module demonstrates hybrid queries against a Milvus collection with
the three rerank strategies, built either fluently or from a request dict.
"""

import asyncio
import logging
import random
from typing import List

from config import configure_logging, load_settings
from fusion_operations import (
    HybridQuery,
    HybridQueryMetrics,
    HybridQueryParams,
    LinearCombinationReranker,
    MilvusSearchExecutor,
    RRFReranker,
    create_reranker_from_settings,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def embed(text: str, dimension: int = 128) -> List[float]:
    """Stand-in for an embedding model, for demonstration purposes."""
    rng = random.Random(text)
    return [rng.random() for _ in range(dimension)]


def log_metrics(metrics: HybridQueryMetrics) -> None:
    logger.info(f"Query metrics: {metrics.to_dict()}")


async def run_example():
    """Run example hybrid queries."""
    settings = load_settings("config.yaml")
    configure_logging(settings)

    executor = MilvusSearchExecutor.from_settings("example_collection", settings)
    query = "What is vector search?"
    vector = embed(query)

    try:
        # Example 1: Fluent hybrid query with RRF
        logger.info("Example 1: Hybrid query with RRF reranking")
        try:
            rows = await (
                HybridQuery(executor, query, vector, metrics_callback=log_metrics)
                .where("category == 'docs'")
                .select(["text", "category"])
                .rerank(RRFReranker(k=60))
                .limit(10)
                .to_list(timeout=settings.query.timeout)
            )
            for i, row in enumerate(rows[:3]):
                logger.info(f"Result {i+1}: ID={row['_rowid']}, Relevance={row['_relevance_score']:.4f}")
        except Exception as e:
            logger.error(f"RRF hybrid query failed: {e}")

        # Example 2: Linear combination with vector tuning
        logger.info("\nExample 2: Hybrid query with linear combination")
        try:
            batch = await (
                HybridQuery(executor, query, vector)
                .rerank(LinearCombinationReranker(weight=0.6))
                .nprobes(16)
                .ef(64)
                .distance_range(upper=0.8)
                .limit(5)
                .to_arrow()
            )
            logger.info(f"Found {batch.num_rows} results, columns: {batch.schema.names}")
        except Exception as e:
            logger.error(f"Linear hybrid query failed: {e}")

        # Example 3: Request dict validated by HybridQueryParams
        logger.info("\nExample 3: Hybrid query from request parameters")
        request = {
            "query": query,
            "vector": vector,
            "filter": "category == 'docs'",
            "rerank_method": "mrr",
            "mrr_weight_vector": 0.6,
            "mrr_weight_fts": 0.4,
            "limit": 10,
            "offset": 10,
        }
        try:
            hybrid_query = HybridQueryParams(**request).build(
                executor,
                concurrent=settings.query.concurrent_sub_searches
            )
            df = await hybrid_query.to_pandas()
            logger.info(f"Second page:\n{df.head()}")
        except Exception as e:
            logger.error(f"MRR hybrid query failed: {e}")

        # Example 4: Default strategy from settings
        logger.info("\nExample 4: Settings-driven reranker")
        reranker = create_reranker_from_settings(settings.reranker)
        batch = await HybridQuery(executor, query, vector, reranker=reranker).limit(3).to_arrow()
        logger.info(f"{reranker.get_config()} returned {batch.num_rows} results")

    except Exception as e:
        logger.error(f"Example failed: {e}")
    finally:
        executor.close()


if __name__ == "__main__":
    asyncio.run(run_example())
