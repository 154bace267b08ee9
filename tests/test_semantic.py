import pytest
from result import is_err, is_ok

from mailflow.embeddings import OpenAIEmbeddingProvider, cosine_similarity
from mailflow.errors import (
    EmbeddingDimensionMismatch,
    InvalidQuery,
    ProviderUnavailable,
)
from mailflow.models import SearchSource
from mailflow.search import HybridSearchEngine
from tests.utils import OWNER, make_email, parts, save_emails, temp_test_dir

# in here for ruff
parts
temp_test_dir

CORPUS = [
    make_email(
        "e1",
        subject="Your flight to Lisbon is confirmed",
        body_text="Flight TP 1351 to Lisbon departs at 07:10. Boarding pass attached.",
    ),
    make_email(
        "e2",
        subject="Invoice for March",
        body_text="Please find attached the invoice for March. Payment is due in 30 days.",
    ),
    make_email(
        "e3",
        subject="Quarterly planning meeting",
        body_text="Can we move the quarterly planning meeting to Thursday afternoon?",
    ),
]


@pytest.fixture(scope="function")
def corpus(parts):
    save_emails(parts.db, [email.detached_copy() for email in CORPUS])
    return parts


@pytest.mark.asyncio
async def test_generate_embeddings_counts(corpus):
    outcome = await corpus.engine.generate_embeddings(OWNER)
    assert is_ok(outcome)
    assert outcome.ok_value.processed == 3
    assert outcome.ok_value.failed == 0
    assert outcome.ok_value.remaining == 0

    again = await corpus.engine.generate_embeddings(OWNER)
    assert again.ok_value.processed == 0
    assert again.ok_value.remaining == 0


@pytest.mark.asyncio
async def test_generate_embeddings_respects_limit(corpus):
    outcome = await corpus.engine.generate_embeddings(OWNER, limit=2)
    assert outcome.ok_value.processed == 2
    assert outcome.ok_value.remaining == 1


@pytest.mark.asyncio
async def test_generate_embeddings_counts_failures(corpus):
    save_emails(corpus.db, [make_email("blank")])
    save_emails(corpus.db, [make_email("gone", subject="trash", labels=["TRASH"])])

    outcome = await corpus.engine.generate_embeddings(OWNER)
    assert outcome.ok_value.processed == 3
    assert outcome.ok_value.failed == 1
    # the blank email still has no vector, the trashed one is not counted
    assert outcome.ok_value.remaining == 1
    assert corpus.db.get_email(OWNER, "gone").embedding is None


@pytest.mark.asyncio
async def test_generate_embeddings_without_api_key(corpus):
    engine = HybridSearchEngine(
        db=corpus.db,
        remote_clients={OWNER: corpus.client},
        embedding_provider=OpenAIEmbeddingProvider(api_key=None),
        settings=corpus.settings.search_settings,
    )
    outcome = await engine.generate_embeddings(OWNER)
    assert is_err(outcome)
    assert isinstance(outcome.err_value, ProviderUnavailable)
    assert corpus.db.count_without_embedding(OWNER) == 3

    search = await engine.semantic_search(OWNER, "flight")
    assert isinstance(search.err_value, ProviderUnavailable)


@pytest.mark.asyncio
async def test_semantic_search_ranks_by_similarity(corpus):
    await corpus.engine.generate_embeddings(OWNER)

    outcome = await corpus.engine.semantic_search(OWNER, "flight to Lisbon boarding")
    assert is_ok(outcome)
    results = outcome.ok_value
    assert results[0].email.id == "e1"
    assert all(r.source == SearchSource.semantic for r in results)
    scores = [r.score for r in results]
    assert scores == sorted(scores, reverse=True)
    assert all(-1.0 <= s <= 1.0 for s in scores)


@pytest.mark.asyncio
async def test_semantic_search_without_embeddings_is_empty(corpus):
    outcome = await corpus.engine.semantic_search(OWNER, "anything")
    assert is_ok(outcome)
    assert outcome.ok_value == []


@pytest.mark.asyncio
async def test_semantic_search_limit_is_clamped(corpus):
    save_emails(
        corpus.db,
        [make_email(f"x{i}", subject=f"extra mail {i}", body_text="text") for i in range(3)],
    )
    await corpus.engine.generate_embeddings(OWNER)
    corpus.engine.settings.semantic_default_limit = 2
    corpus.engine.settings.semantic_max_limit = 4

    default = await corpus.engine.semantic_search(OWNER, "mail")
    assert len(default.ok_value) == 2

    nonpositive = await corpus.engine.semantic_search(OWNER, "mail", limit=0)
    assert len(nonpositive.ok_value) == 2

    capped = await corpus.engine.semantic_search(OWNER, "mail", limit=100)
    assert len(capped.ok_value) == 4

    one = await corpus.engine.semantic_search(OWNER, "mail", limit=1)
    assert len(one.ok_value) == 1


@pytest.mark.asyncio
async def test_semantic_search_dimension_mismatch(corpus):
    assert is_ok(corpus.db.set_embedding(OWNER, "e1", [1.0, 0.0, 0.0]))

    outcome = await corpus.engine.semantic_search(OWNER, "flight")
    assert is_err(outcome)
    assert isinstance(outcome.err_value, EmbeddingDimensionMismatch)


def test_stored_dimensions_must_agree(corpus):
    assert is_ok(corpus.db.set_embedding(OWNER, "e1", [1.0, 0.0, 0.0]))

    mismatch = corpus.db.set_embedding(OWNER, "e2", [1.0, 0.0])
    assert is_err(mismatch)
    assert isinstance(mismatch.err_value, EmbeddingDimensionMismatch)
    assert corpus.db.get_email(OWNER, "e2").embedding is None

    # replacing the only stored vector is allowed to change its size
    assert is_ok(corpus.db.set_embedding(OWNER, "e1", [0.5, 0.5]))


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["", "  "])
async def test_semantic_search_empty_query(corpus, query):
    outcome = await corpus.engine.semantic_search(OWNER, query)
    assert isinstance(outcome.err_value, InvalidQuery)


def test_cosine_similarity():
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)
    assert cosine_similarity([1.0, 2.0], [2.0, 4.0]) == pytest.approx(1.0)


@pytest.mark.parametrize(
    "a,b",
    [
        ([], []),
        ([1.0], [1.0, 2.0]),
        ([0.0, 0.0], [1.0, 1.0]),
    ],
)
def test_cosine_similarity_without_signal(a, b):
    assert cosine_similarity(a, b) == 0.0
