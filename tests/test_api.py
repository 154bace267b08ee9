import pytest

from mailflow.api import Application
from mailflow.errors import UpstreamError
from mailflow.models import EmailStatus
from mailflow.testing import TEST_ACCOUNT
from tests.utils import (
    OWNER,
    empty_app,
    get_test_client,
    make_email,
    remote_client,
    save_emails,
    temp_test_dir,
    test_app,
)

# in here for ruff
test_app
empty_app
temp_test_dir

INVOICE_ID = "18c1a0f3e2b4d001"
PLANNING_ID = "18c1a0f3e2b4d002"
VIETNAMESE_ID = "18c1a0f3e2b4d003"
FLIGHT_ID = "18c1a0f3e2b4d004"
TRASHED_ID = "18c1a0f3e2b4d007"


@pytest.mark.asyncio
async def test_get_accounts(test_app: Application):
    async with get_test_client(test_app) as client:
        resp = await client.get("/accounts")
    assert resp.status_code == 200
    assert resp.json() == [
        {
            "account_id": "test",
            "name": TEST_ACCOUNT.name,
            "user": TEST_ACCOUNT.user,
            "provider": TEST_ACCOUNT.provider,
        }
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method,path",
    [
        ("get", "/accounts/nonexistent/search?q=invoice"),
        ("get", "/accounts/nonexistent/kanban"),
        ("get", "/accounts/nonexistent/kanban/columns"),
        ("get", "/accounts/nonexistent/search/suggestions?q=acme"),
        ("get", "/accounts/nonexistent/statistics"),
    ],
)
async def test_unknown_account(test_app: Application, method, path):
    async with get_test_client(test_app) as client:
        resp = await getattr(client, method)(path)
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Account not found"


@pytest.mark.asyncio
async def test_search(test_app: Application):
    async with get_test_client(test_app) as client:
        resp = await client.get("/accounts/test/search", params={"q": "invoice"})
    assert resp.status_code == 200
    data = resp.json()

    assert [hit["email"]["id"] for hit in data["emails"]] == [INVOICE_ID]
    hit = data["emails"][0]
    assert hit["source"] == "remote"
    assert hit["score"] == 1.0
    assert hit["email"]["body_text"] == ""
    assert "embedding" not in hit["email"]
    assert data["total_estimate"] == 1
    assert data["next_page_token"] is None


@pytest.mark.asyncio
async def test_search_orders_thread_newest_first(test_app: Application):
    async with get_test_client(test_app) as client:
        resp = await client.get("/accounts/test/search", params={"q": "planning"})
    ids = [hit["email"]["id"] for hit in resp.json()["emails"]]
    assert ids == ["18c1a0f3e2b4d005", PLANNING_ID]


@pytest.mark.asyncio
async def test_search_without_accents(test_app: Application):
    async with get_test_client(test_app) as client:
        resp = await client.get("/accounts/test/search", params={"q": "hoa don"})
    hits = resp.json()["emails"]
    assert [(h["email"]["id"], h["source"]) for h in hits] == [(VIETNAMESE_ID, "local")]


@pytest.mark.asyncio
async def test_search_never_returns_trash(test_app: Application):
    async with get_test_client(test_app) as client:
        resp = await client.get("/accounts/test/search", params={"q": "newsletter"})
    assert TRASHED_ID not in [h["email"]["id"] for h in resp.json()["emails"]]


@pytest.mark.asyncio
async def test_search_empty_query(test_app: Application):
    async with get_test_client(test_app) as client:
        missing = await client.get("/accounts/test/search")
        blank = await client.get("/accounts/test/search", params={"q": "  "})
    assert missing.status_code == 400
    assert blank.status_code == 400


@pytest.mark.asyncio
async def test_search_upstream_failure(test_app: Application):
    remote_client(test_app).search_error = UpstreamError("provider is down")
    async with get_test_client(test_app) as client:
        resp = await client.get("/accounts/test/search", params={"q": "invoice"})
    assert resp.status_code == 502
    assert resp.json()["detail"] == "provider is down"


@pytest.mark.asyncio
async def test_suggestions(test_app: Application):
    async with get_test_client(test_app) as client:
        resp = await client.get("/accounts/test/search/suggestions", params={"q": "acme"})
    assert resp.status_code == 200
    suggestions = resp.json()["suggestions"]
    assert {"text": "Acme Billing", "type": "sender"} in suggestions


@pytest.mark.asyncio
async def test_generate_embeddings_and_semantic_search(test_app: Application):
    async with get_test_client(test_app) as client:
        first = await client.post(
            "/accounts/test/search/generate-embeddings", json={"limit": 2}
        )
        assert first.status_code == 200
        assert first.json() == {"processed": 2, "failed": 0, "remaining": 5}

        rest = await client.post("/accounts/test/search/generate-embeddings")
        assert rest.json() == {"processed": 5, "failed": 0, "remaining": 0}

        resp = await client.post(
            "/accounts/test/search/semantic",
            json={"query": "flight to Lisbon check-in", "limit": 3},
        )
    assert resp.status_code == 200
    data = resp.json()
    assert data["query"] == "flight to Lisbon check-in"
    assert data["total"] == 3
    assert data["results"][0]["email"]["id"] == FLIGHT_ID
    scores = [r["score"] for r in data["results"]]
    assert scores == sorted(scores, reverse=True)


@pytest.mark.asyncio
async def test_semantic_search_empty_query(test_app: Application):
    async with get_test_client(test_app) as client:
        resp = await client.post("/accounts/test/search/semantic", json={"query": ""})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_board(test_app: Application):
    async with get_test_client(test_app) as client:
        resp = await client.get("/accounts/test/kanban")
    assert resp.status_code == 200
    columns = resp.json()["columns"]
    assert set(columns) == {s.value for s in EmailStatus}
    inbox_ids = {card["id"] for card in columns["inbox"]}
    assert INVOICE_ID in inbox_ids
    assert TRASHED_ID not in inbox_ids
    assert all(columns[s] == [] for s in ["todo", "in_progress", "done", "snoozed"])


@pytest.mark.asyncio
async def test_move_and_snooze(test_app: Application):
    db = test_app.context.db
    async with get_test_client(test_app) as client:
        resp = await client.post(
            "/accounts/test/kanban/snooze",
            json={"email_id": PLANNING_ID, "until": "2099-01-01T00:00:00Z"},
        )
        assert resp.status_code == 200
        assert db.get_email(OWNER, PLANNING_ID).status == EmailStatus.snoozed

        board = (await client.get("/accounts/test/kanban")).json()["columns"]
        assert [c["id"] for c in board["snoozed"]] == [PLANNING_ID]
        assert board["snoozed"][0]["snoozed_until"].startswith("2099-01-01T00:00:00")

        resp = await client.post(
            "/accounts/test/kanban/move",
            json={"email_id": PLANNING_ID, "to_status": "done"},
        )
        assert resp.status_code == 200

    stored = db.get_email(OWNER, PLANNING_ID)
    assert stored.status == EmailStatus.done
    assert stored.deferred_until is None


@pytest.mark.asyncio
async def test_move_errors(test_app: Application):
    async with get_test_client(test_app) as client:
        invalid = await client.post(
            "/accounts/test/kanban/move",
            json={"email_id": PLANNING_ID, "to_status": "archived"},
        )
        missing = await client.post(
            "/accounts/test/kanban/move",
            json={"email_id": "does-not-exist", "to_status": "done"},
        )
        no_deadline = await client.post(
            "/accounts/test/kanban/move",
            json={"email_id": PLANNING_ID, "to_status": "snoozed"},
        )
    assert invalid.status_code == 400
    assert missing.status_code == 404
    assert no_deadline.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "until", ["2099-01-01T00:00:00", "2001-01-01T00:00:00Z", "soon"]
)
async def test_snooze_errors(test_app: Application, until):
    async with get_test_client(test_app) as client:
        resp = await client.post(
            "/accounts/test/kanban/snooze",
            json={"email_id": PLANNING_ID, "until": until},
        )
    assert resp.status_code == 400
    assert test_app.context.db.get_email(OWNER, PLANNING_ID).deferred_until is None


@pytest.mark.asyncio
async def test_summarize(test_app: Application):
    async with get_test_client(test_app) as client:
        resp = await client.post(
            "/accounts/test/kanban/summarize", json={"email_id": INVOICE_ID}
        )
        assert resp.status_code == 200
        summary = resp.json()["summary"]
        assert summary

        board = (await client.get("/accounts/test/kanban")).json()["columns"]
    card = next(c for c in board["inbox"] if c["id"] == INVOICE_ID)
    assert card["summary"] == summary


@pytest.mark.asyncio
async def test_empty_backend(empty_app: Application):
    save_emails(empty_app.context.db, [make_email("only", subject="invoice copy")])
    async with get_test_client(empty_app) as client:
        resp = await client.get("/accounts/test/search", params={"q": "invoice"})
    hits = resp.json()["emails"]
    assert [(h["email"]["id"], h["source"]) for h in hits] == [("only", "local")]
