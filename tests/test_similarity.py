"""
Similarity engine tests, including the end-to-end scenarios for identical
items and empty items.
"""

import pytest

from anime_embeddings.config import Settings
from anime_embeddings.core.cache import InMemoryCache
from anime_embeddings.service import SemanticEngine

from conftest import FakeCatalog, FakeRepository, FakeTagDirectory


async def embed_all(engine, item_ids):
    for item_id in item_ids:
        await engine.get_anime_embedding(item_id)


# ---------------------------------------------------------------------
# Scenario A: identical items
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_identical_items_are_fully_similar(engine):
    similarity = await engine.calculate_semantic_similarity("A", "B")
    assert similarity == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_semantic_similarity_with_missing_item_is_zero(engine):
    assert await engine.calculate_semantic_similarity("A", "missing") == 0.0


@pytest.mark.asyncio
async def test_find_similar_returns_identical_item(engine):
    await embed_all(engine, ["A", "B", "C", "D"])

    results = await engine.find_similar_anime_by_embedding("A", limit=10)

    assert [r.item_id for r in results] == ["B"]
    assert results[0].similarity == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_find_similar_builds_source_on_demand(engine, repository):
    await embed_all(engine, ["B"])

    results = await engine.find_similar_anime_by_embedding("A")

    assert [r.item_id for r in results] == ["B"]
    assert "A" in repository.rows


@pytest.mark.asyncio
async def test_find_similar_never_returns_source_or_excluded(engine, catalog):
    catalog.add("E", "Giant robots fight for justice and honor", ["mecha", "action"])
    await embed_all(engine, ["A", "B", "C", "D", "E"])

    results = await engine.find_similar_anime_by_embedding("A", exclude_ids=["B"])
    ids = [r.item_id for r in results]

    assert "A" not in ids
    assert "B" not in ids
    assert ids == ["E"]


@pytest.mark.asyncio
async def test_find_similar_sorted_above_threshold_and_limited(engine, catalog):
    catalog.add("E", "Giant robots fight for justice and honor", ["mecha", "action"])
    await embed_all(engine, ["A", "B", "C", "D", "E"])

    results = await engine.find_similar_anime_by_embedding("A", limit=10)

    assert [r.item_id for r in results] == ["B", "E"]
    assert all(r.similarity > 0.5 for r in results)
    scores = [r.similarity for r in results]
    assert scores == sorted(scores, reverse=True)

    limited = await engine.find_similar_anime_by_embedding("A", limit=1)
    assert [r.item_id for r in limited] == ["B"]


@pytest.mark.asyncio
async def test_find_similar_unknown_item(engine):
    assert await engine.find_similar_anime_by_embedding("missing") == []


@pytest.mark.asyncio
async def test_find_similar_ignores_other_epochs(engine, repository):
    await embed_all(engine, ["A", "B"])
    repository.rows["B"]["tag_epoch"] = "stale-epoch"

    results = await engine.find_similar_anime_by_embedding("A")
    assert results == []


@pytest.mark.asyncio
async def test_candidate_pool_is_bounded(catalog, tag_directory, repository):
    config = Settings(candidate_pool_size=1)
    engine = SemanticEngine(catalog, tag_directory, repository, InMemoryCache(), config)
    catalog.add("0", "Giant robots fight for justice", ["mecha", "action"])
    await embed_all(engine, ["0", "A", "B"])

    results = await engine.find_similar_anime_by_embedding("A")

    # Only the first stored candidate ("0") is scored.
    assert [r.item_id for r in results] == ["0"]


# ---------------------------------------------------------------------
# Scenario B: empty items
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_empty_item_without_tag_directory_has_empty_vectors(catalog, repository):
    catalog.add("Z", "", [])
    engine = SemanticEngine(
        catalog, FakeTagDirectory([]), repository, InMemoryCache(), Settings()
    )

    embedding = await engine.get_anime_embedding("Z")

    assert embedding is not None
    assert embedding.description_vector == []
    assert embedding.categorical_vector == []
    assert embedding.combined_vector == []
    assert await engine.find_similar_anime_by_embedding("Z") == []


@pytest.mark.asyncio
async def test_empty_item_with_tag_directory_matches_nothing(engine, catalog):
    catalog.add("Z", "", [])
    await embed_all(engine, ["A", "B", "C", "D"])

    embedding = await engine.get_anime_embedding("Z")

    assert embedding.description_vector == []
    assert embedding.combined_vector == [0.0, 0.0, 0.0, 0.0]
    assert await engine.find_similar_anime_by_embedding("Z") == []
    assert await engine.calculate_semantic_similarity("Z", "A") == 0.0


# ---------------------------------------------------------------------
# Text search
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_search_short_query_returns_empty(engine):
    await embed_all(engine, ["A", "B"])
    assert await engine.search_by_semantic_similarity("ab") == []
    assert await engine.search_by_semantic_similarity("   ") == []
    assert await engine.search_by_semantic_similarity("") == []


@pytest.mark.asyncio
async def test_search_by_text_ranks_descriptions(engine):
    await embed_all(engine, ["A", "B", "C", "D"])

    results = await engine.search_by_semantic_similarity("giant robots battle")

    # A and B tie; candidate order is kept.
    assert [r.item_id for r in results] == ["A", "B"]
    assert all(r.similarity > 0.3 for r in results)
    assert results[0].similarity == pytest.approx(results[1].similarity)


@pytest.mark.asyncio
async def test_search_by_text_respects_exclusions_and_limit(engine):
    await embed_all(engine, ["A", "B", "C", "D"])

    excluded = await engine.search_by_semantic_similarity(
        "giant robots battle", exclude_ids=["A"]
    )
    assert [r.item_id for r in excluded] == ["B"]

    limited = await engine.search_by_semantic_similarity("giant robots battle", limit=1)
    assert len(limited) == 1


@pytest.mark.asyncio
async def test_search_with_unknown_words_returns_empty(engine):
    await embed_all(engine, ["A", "B"])
    assert await engine.search_by_semantic_similarity("completely unrelated vocabulary") == []


@pytest.mark.asyncio
async def test_search_truncates_long_query(engine):
    await embed_all(engine, ["A", "B", "C", "D"])

    query = "giant robots " + "x" * 2000 + " cooking village"
    results = await engine.search_by_semantic_similarity(query)

    # "cooking village" lies beyond the query length limit.
    assert "C" not in [r.item_id for r in results]


@pytest.mark.asyncio
async def test_similarity_deterministic_across_engines():
    def make_engine():
        catalog = FakeCatalog()
        catalog.add("A", "Space pirates search for legendary treasure", ["adventure"])
        catalog.add("B", "Space pirates search for hidden treasure", ["adventure"])
        catalog.add("C", "High school volleyball team trains hard", ["sports"])
        return SemanticEngine(
            catalog,
            FakeTagDirectory(["adventure", "sports"]),
            FakeRepository(),
            InMemoryCache(),
            Settings(),
        )

    first = await make_engine().calculate_semantic_similarity("A", "B")
    second = await make_engine().calculate_semantic_similarity("A", "B")
    assert first == second
    assert 0.5 < first < 1.0


@pytest.mark.asyncio
async def test_engine_config_reaches_tokenizer():
    def make_engine(config):
        catalog = FakeCatalog()
        catalog.add("1", "ab robots")
        catalog.add("2", "pirates sail")
        return SemanticEngine(
            catalog, FakeTagDirectory([]), FakeRepository(), InMemoryCache(), config
        )

    default = await make_engine(Settings(_env_file=None)).get_anime_embedding("1")
    short_tokens = await make_engine(
        Settings(_env_file=None, min_token_length=2)
    ).get_anime_embedding("1")

    assert len(default.description_vector) == 3
    assert len(short_tokens.description_vector) == 4
    # "ab" sorts first in the term window
    assert short_tokens.description_vector[0] > 0
