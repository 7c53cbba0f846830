"""
HTTP client for the candidate API with a local view cache.

Mutations are optimistic: every cached candidate view is snapshotted, the
change is applied locally, then sent. A success marks the candidate views stale
so the next read refetches server-derived fields (aggregation counts, job
counters). A failure puts every snapshotted view back and raises
`MutationError`. Concurrent mutations on one candidate are not serialized; the
last write to reach the server wins.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping

import httpx

from lontario.client.cache import QueryCache, candidate_detail_key, candidate_list_key
from lontario.core.config import settings
from lontario.services.normalize import normalize_candidate, to_storage_fields

logger = logging.getLogger(__name__)

CANDIDATES_PREFIX = ("candidates",)
LIST_PREFIX = ("candidates", "list")

POLL_MAX_ATTEMPTS = 10
POLL_INTERVAL_SECONDS = 2.0


class ClientError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        details: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details


class MutationError(ClientError):
    """A mutation was rejected or never reached the server; the cache has been rolled back."""


def _view(item: Mapping[str, Any]) -> dict[str, Any]:
    # Keep fields normalize_candidate does not know about (job, activities, ...).
    return {**item, **normalize_candidate(item)}


def _error_from_response(response: httpx.Response, cls=ClientError) -> ClientError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("message") or f"Request failed with status {response.status_code}"
    details = body.get("details") if isinstance(body.get("details"), dict) else None
    return cls(message, status_code=response.status_code, code=body.get("error"), details=details)


class CandidatesClient:
    def __init__(
        self,
        base_url: str | None = None,
        *,
        cache: QueryCache | None = None,
        transport: httpx.BaseTransport | None = None,
        timeout: float | None = None,
        actor: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        headers = {"Accept": "application/json"}
        if actor:
            headers["X-Actor-Id"] = actor
        self.cache = cache or QueryCache()
        self._sleep = sleep
        self._http = httpx.Client(
            base_url=(base_url or settings.API_BASE_URL).rstrip("/"),
            headers=headers,
            timeout=timeout if timeout is not None else settings.API_TIMEOUT_SECONDS,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "CandidatesClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, *, error_cls=ClientError, **kwargs) -> Any:
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("API request failed: %s %s error=%s", method, path, exc)
            raise error_cls(f"Could not reach the server: {exc}") from exc
        if response.status_code >= 400:
            raise _error_from_response(response, error_cls)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            logger.warning("API returned a non-JSON body: %s %s status=%s", method, path, response.status_code)
            raise error_cls(
                "Server returned an unreadable response", status_code=response.status_code
            ) from exc

    # ----------------------------
    # Reads
    # ----------------------------

    def list_candidates(self, filters: Mapping[str, Any] | None = None, *, force: bool = False) -> dict:
        key = candidate_list_key(filters)
        if not force and not self.cache.is_stale(key):
            return self.cache.get(key)

        params = {k: v for k, v in (filters or {}).items() if v is not None and v != ""}
        body = self._request("GET", "/candidates", params=params)
        view = {
            "candidates": [_view(c) for c in body.get("candidates", [])],
            "pagination": body.get("pagination"),
            "aggregations": body.get("aggregations"),
        }
        self.cache.set(key, view)
        return view

    def get_candidate(self, candidate_id: str, *, force: bool = False) -> dict:
        key = candidate_detail_key(candidate_id)
        if not force and not self.cache.is_stale(key):
            return self.cache.get(key)

        view = _view(self._request("GET", f"/candidates/{candidate_id}"))
        self.cache.set(key, view)
        return view

    def poll_until_scored(
        self,
        candidate_id: str,
        *,
        max_attempts: int = POLL_MAX_ATTEMPTS,
        interval: float = POLL_INTERVAL_SECONDS,
    ) -> dict:
        """
        Refetch a candidate until the background scorer has written `ai_score`.
        Returns the last fetched view; `ai_score` is still None if scoring never finished.
        """
        view: dict = {}
        for attempt in range(max(1, max_attempts)):
            view = self.get_candidate(candidate_id, force=True)
            if view.get("ai_score") is not None:
                return view
            if attempt + 1 < max_attempts:
                self._sleep(interval)
        logger.info("Candidate not scored after %s polls: candidate_id=%s", max_attempts, candidate_id)
        return view

    # ----------------------------
    # Optimistic mutations
    # ----------------------------

    def _apply_locally(self, candidate_id: str, changes: Mapping[str, Any]) -> None:
        def patch(item: dict) -> dict:
            if item.get("id") != candidate_id:
                return item
            return _view({**item, **changes})

        for key in self.cache.keys(LIST_PREFIX):
            self.cache.update(
                key,
                lambda view: {**view, "candidates": [patch(c) for c in view.get("candidates", [])]},
            )
        self.cache.update(candidate_detail_key(candidate_id), patch)

    def _mutate(self, candidate_id: str, changes: Mapping[str, Any], method: str, path: str, payload: dict) -> Any:
        snapshot = self.cache.snapshot(CANDIDATES_PREFIX)
        self._apply_locally(candidate_id, changes)
        try:
            body = self._request(method, path, json=payload, error_cls=MutationError)
        except Exception:
            self.cache.restore(snapshot)
            logger.info("Rolled back optimistic update: candidate_id=%s path=%s", candidate_id, path)
            raise
        self.cache.invalidate(CANDIDATES_PREFIX)
        return body

    def move_candidate(
        self,
        candidate_id: str,
        stage: str,
        *,
        rejection_reason: str | None = None,
        rejection_feedback: str | None = None,
        notes: str | None = None,
    ) -> dict:
        payload = {"stage": stage}
        if rejection_reason is not None:
            payload["rejection_reason"] = rejection_reason
        if rejection_feedback is not None:
            payload["rejection_feedback"] = rejection_feedback
        if notes is not None:
            payload["notes"] = notes

        changes: dict[str, Any] = {"stage": stage}
        if rejection_reason is not None:
            changes["rejection_reason"] = rejection_reason
        body = self._mutate(candidate_id, changes, "POST", f"/candidates/{candidate_id}/move", payload)
        return _view(body["candidate"])

    def update_candidate(self, candidate_id: str, changes: Mapping[str, Any]) -> dict:
        """`changes` may use either dashboard or storage field names."""
        storage = to_storage_fields(changes)
        body = self._mutate(candidate_id, storage, "PATCH", f"/candidates/{candidate_id}", storage)
        return _view(body)

    def star_candidate(self, candidate_id: str, starred: bool = True) -> dict:
        return self.update_candidate(candidate_id, {"is_starred": bool(starred)})

    def bulk_move(self, candidate_ids: list[str], stage: str, *, rejection_reason: str | None = None) -> dict:
        # Partial success is normal here, so there is no local speculation; just refetch afterwards.
        payload: dict[str, Any] = {"candidate_ids": list(candidate_ids), "stage": stage}
        if rejection_reason is not None:
            payload["rejection_reason"] = rejection_reason
        try:
            return self._request("POST", "/candidates/bulk-move", json=payload, error_cls=MutationError)
        finally:
            self.cache.invalidate(CANDIDATES_PREFIX)
