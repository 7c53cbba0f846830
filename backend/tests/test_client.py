from __future__ import annotations

import json

import httpx
import pytest

from lontario.client.cache import QueryCache, candidate_detail_key, candidate_list_key, freeze_filters
from lontario.client.candidates import CandidatesClient, ClientError, MutationError


# ----------------------------
# QueryCache
# ----------------------------


def test_freeze_filters_ignores_order_and_empties():
    assert freeze_filters({"stage": "applied", "job_id": "j1", "search": "", "min_score": None}) == (
        ("job_id", "j1"),
        ("stage", "applied"),
    )
    assert candidate_list_key({"a": 1, "b": 2}) == candidate_list_key({"b": 2, "a": 1})
    assert candidate_list_key() == ("candidates", "list", ())


def test_invalidate_marks_prefix_stale():
    cache = QueryCache()
    cache.set(candidate_list_key(), {"candidates": []})
    cache.set(candidate_detail_key("c1"), {"id": "c1"})
    cache.set(("jobs", "list", ()), [])

    assert cache.invalidate(("candidates",)) == 2
    assert cache.is_stale(candidate_list_key())
    assert cache.is_stale(candidate_detail_key("c1"))
    assert not cache.is_stale(("jobs", "list", ()))
    # Stale entries still serve their last value.
    assert cache.get(candidate_detail_key("c1")) == {"id": "c1"}
    assert cache.is_stale(("never", "cached"))


def test_snapshot_restore_is_exact():
    cache = QueryCache()
    cache.set(candidate_detail_key("c1"), {"id": "c1", "stage": "applied"})

    snap = cache.snapshot(("candidates",), extra_keys=(candidate_detail_key("c2"),))
    cache.update(candidate_detail_key("c1"), lambda v: {**v, "stage": "offer"})
    cache.set(candidate_detail_key("c2"), {"id": "c2"})
    cache.set(candidate_list_key({"stage": "offer"}), {"candidates": []})
    cache.restore(snap)

    assert cache.get(candidate_detail_key("c1")) == {"id": "c1", "stage": "applied"}
    assert cache.keys(("candidates",)) == [candidate_detail_key("c1")]


def test_snapshot_is_a_deep_copy():
    cache = QueryCache()
    value = {"candidates": [{"id": "c1", "stage": "applied"}]}
    cache.set(candidate_list_key(), value)

    snap = cache.snapshot(("candidates",))
    value["candidates"][0]["stage"] = "hired"
    cache.restore(snap)

    assert cache.get(candidate_list_key())["candidates"][0]["stage"] == "applied"


def test_update_missing_key_returns_false():
    assert QueryCache().update(("candidates", "detail", "x"), lambda v: v) is False


# ----------------------------
# CandidatesClient
# ----------------------------


class FakeApi:
    """Minimal in-memory stand-in for the candidate endpoints."""

    def __init__(self):
        self.candidates = {
            "c1": {"id": "c1", "full_name": "Ada", "email": "ada@example.com", "stage": "applied", "ai_score": 90, "is_starred": False},
            "c2": {"id": "c2", "full_name": "Alan", "email": "alan@example.com", "stage": "screening", "ai_score": None, "is_starred": False},
        }
        self.requests: list[httpx.Request] = []
        self.fail_next: tuple[int, dict] | None = None
        self.score_after: int | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_next is not None:
            status, body = self.fail_next
            self.fail_next = None
            return httpx.Response(status, json=body)

        path = request.url.path
        if request.method == "GET" and path == "/candidates":
            stage = request.url.params.get("stage")
            items = [c for c in self.candidates.values() if not stage or c["stage"] == stage]
            return httpx.Response(
                200,
                json={
                    "candidates": items,
                    "pagination": {"page": 1, "limit": 20, "total": len(items), "total_pages": 1},
                    "aggregations": {"by_stage": {}, "score_distribution": {}},
                },
            )
        if request.method == "POST" and path == "/candidates/bulk-move":
            payload = json.loads(request.content)
            for cid in payload["candidate_ids"]:
                self.candidates[cid]["stage"] = payload["stage"]
            ids = payload["candidate_ids"]
            return httpx.Response(200, json={"succeeded": ids, "failed": [], "total": len(ids)})

        parts = path.strip("/").split("/")
        cid = parts[1]
        if cid not in self.candidates:
            return httpx.Response(404, json={"error": "NOT_FOUND", "message": "Candidate not found"})
        candidate = self.candidates[cid]

        if request.method == "GET" and len(parts) == 2:
            if self.score_after is not None:
                self.score_after -= 1
                if self.score_after <= 0:
                    candidate["ai_score"] = 77
            return httpx.Response(200, json=candidate)
        if request.method == "PATCH":
            candidate.update(json.loads(request.content))
            return httpx.Response(200, json=candidate)
        if request.method == "POST" and parts[-1] == "move":
            payload = json.loads(request.content)
            candidate["stage"] = payload["stage"]
            return httpx.Response(200, json={"candidate": candidate, "activity": {"activity_type": "stage_changed"}})
        return httpx.Response(405, json={"error": "METHOD_NOT_ALLOWED", "message": "nope"})


@pytest.fixture()
def api():
    return FakeApi()


@pytest.fixture()
def sleeps():
    return []


@pytest.fixture()
def candidates_client(api, sleeps):
    client = CandidatesClient(
        "http://api.test",
        transport=httpx.MockTransport(api),
        actor="recruiter-9",
        sleep=sleeps.append,
    )
    yield client
    client.close()


def test_list_is_cached_until_invalidated(candidates_client, api):
    first = candidates_client.list_candidates()
    second = candidates_client.list_candidates()

    assert first is second
    assert len(api.requests) == 1
    assert first["candidates"][0]["name"] == "Ada"
    assert first["candidates"][0]["aiScore"] == 90
    assert api.requests[0].headers["X-Actor-Id"] == "recruiter-9"

    candidates_client.list_candidates(force=True)
    assert len(api.requests) == 2


def test_filters_are_sent_and_keyed_separately(candidates_client, api):
    screening = candidates_client.list_candidates({"stage": "screening", "search": ""})

    assert [c["id"] for c in screening["candidates"]] == ["c2"]
    assert dict(api.requests[0].url.params) == {"stage": "screening"}
    candidates_client.list_candidates()
    assert len(api.requests) == 2


def test_successful_move_invalidates_views(candidates_client, api):
    candidates_client.list_candidates()
    candidates_client.get_candidate("c1")

    moved = candidates_client.move_candidate("c1", "technical", notes="Strong take-home")

    assert moved["status"] == moved["stage"] == "technical"
    sent = json.loads(api.requests[-1].content)
    assert sent == {"stage": "technical", "notes": "Strong take-home"}
    cache = candidates_client.cache
    assert cache.is_stale(candidate_list_key())
    assert cache.is_stale(candidate_detail_key("c1"))
    # The optimistic value stays visible until the refetch.
    assert cache.get(candidate_detail_key("c1"))["stage"] == "technical"

    refreshed = candidates_client.list_candidates()
    assert refreshed["candidates"][0]["stage"] == "technical"


def test_failed_move_restores_every_view(candidates_client, api):
    all_view = candidates_client.list_candidates()
    applied_view = candidates_client.list_candidates({"stage": "applied"})
    detail = candidates_client.get_candidate("c1")
    before = {
        "all": json.dumps(all_view, sort_keys=True),
        "applied": json.dumps(applied_view, sort_keys=True),
        "detail": json.dumps(detail, sort_keys=True),
    }
    api.fail_next = (400, {"error": "VALIDATION_ERROR", "message": "Rejection reason is required"})

    with pytest.raises(MutationError) as exc:
        candidates_client.move_candidate("c1", "rejected")

    assert exc.value.status_code == 400
    assert exc.value.code == "VALIDATION_ERROR"
    assert exc.value.message == "Rejection reason is required"
    cache = candidates_client.cache
    assert json.dumps(cache.get(candidate_list_key()), sort_keys=True) == before["all"]
    assert json.dumps(cache.get(candidate_list_key({"stage": "applied"})), sort_keys=True) == before["applied"]
    assert json.dumps(cache.get(candidate_detail_key("c1")), sort_keys=True) == before["detail"]
    assert not cache.is_stale(candidate_list_key())


def test_network_failure_rolls_back(api, sleeps):
    def broken(request):
        if request.method == "GET":
            return api(request)
        raise httpx.ConnectError("connection refused", request=request)

    client = CandidatesClient("http://api.test", transport=httpx.MockTransport(broken), sleep=sleeps.append)
    client.get_candidate("c1")

    with pytest.raises(MutationError, match="Could not reach the server"):
        client.star_candidate("c1")
    assert client.cache.get(candidate_detail_key("c1"))["isStarred"] is False
    client.close()


def test_unreadable_success_body_rolls_back(api, sleeps):
    def proxy(request):
        if request.method == "GET":
            return api(request)
        return httpx.Response(200, text="<html>proxy</html>", headers={"content-type": "text/html"})

    client = CandidatesClient("http://api.test", transport=httpx.MockTransport(proxy), sleep=sleeps.append)
    client.list_candidates()
    client.get_candidate("c1")

    with pytest.raises(MutationError) as exc:
        client.move_candidate("c1", "offer")

    assert exc.value.status_code == 200
    assert client.cache.get(candidate_detail_key("c1"))["stage"] == "applied"
    assert client.cache.get(candidate_list_key())["candidates"][0]["stage"] == "applied"
    client.close()


def test_star_and_view_name_updates(candidates_client, api):
    candidates_client.get_candidate("c1")

    starred = candidates_client.star_candidate("c1")
    assert starred["isStarred"] is True
    assert json.loads(api.requests[-1].content) == {"is_starred": True}

    candidates_client.update_candidate("c1", {"linkedIn": "https://linkedin.com/in/ada"})
    assert json.loads(api.requests[-1].content) == {"linkedin_url": "https://linkedin.com/in/ada"}


def test_read_errors_are_client_errors(candidates_client):
    with pytest.raises(ClientError) as exc:
        candidates_client.get_candidate("ghost")
    assert exc.value.status_code == 404
    assert exc.value.code == "NOT_FOUND"
    assert not isinstance(exc.value, MutationError)


def test_poll_until_scored(candidates_client, api, sleeps):
    api.score_after = 3

    view = candidates_client.poll_until_scored("c2", max_attempts=5, interval=0.5)

    assert view["aiScore"] == 77
    assert sleeps == [0.5, 0.5]


def test_poll_gives_up_after_max_attempts(candidates_client, sleeps):
    view = candidates_client.poll_until_scored("c2", max_attempts=3, interval=1.0)

    assert view["ai_score"] is None
    assert sleeps == [1.0, 1.0]


def test_bulk_move_invalidates_without_speculation(candidates_client, api):
    candidates_client.list_candidates()

    result = candidates_client.bulk_move(["c1", "c2"], "technical")

    assert result["succeeded"] == ["c1", "c2"]
    cached = candidates_client.cache.get(candidate_list_key())
    assert {c["stage"] for c in cached["candidates"]} == {"applied", "screening"}
    assert candidates_client.cache.is_stale(candidate_list_key())
