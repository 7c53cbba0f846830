from __future__ import annotations

from functools import lru_cache

from lontario.services.github import GitHubClient
from lontario.services.notifications import Notifier
from lontario.services.oracle import Oracle


@lru_cache(maxsize=1)
def get_oracle() -> Oracle:
    # Oracle builds its OpenAI client on first use, so this never fails at startup.
    return Oracle()


@lru_cache(maxsize=1)
def get_notifier() -> Notifier:
    return Notifier()


@lru_cache(maxsize=1)
def get_profile_fetcher() -> GitHubClient:
    return GitHubClient()
