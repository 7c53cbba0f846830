from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime

import httpx

from lontario.core.clock import utcnow
from lontario.core.config import settings

logger = logging.getLogger(__name__)

_USERNAME = r"[a-zA-Z0-9](?:[a-zA-Z0-9]|-(?=[a-zA-Z0-9])){0,38}"
_URL_PATTERN = re.compile(rf"github\.com/({_USERNAME})", re.IGNORECASE)
_USERNAME_PATTERN = re.compile(rf"^{_USERNAME}$")

REPOS_PER_PROFILE = 10
REPOS_FOR_LANGUAGES = 5


class GitHubError(RuntimeError):
    pass


class GitHubUserNotFound(GitHubError):
    pass


class GitHubRateLimited(GitHubError):
    pass


@dataclass
class GitHubProfile:
    username: str
    name: str
    url: str
    bio: str | None = None
    avatar_url: str | None = None
    skills: list[str] = field(default_factory=list)
    experience: list[str] = field(default_factory=list)
    projects: list[str] = field(default_factory=list)
    languages: dict[str, int] = field(default_factory=dict)
    years_of_experience: int | None = None

    def as_text(self) -> str:
        """Plain-text rendering appended to resume text before scoring."""
        lines = [f"GitHub profile: {self.name} ({self.url})"]
        if self.bio:
            lines.append(f"Bio: {self.bio}")
        if self.skills:
            lines.append(f"Skills: {', '.join(self.skills)}")
        if self.experience:
            lines.append("Projects:")
            lines.extend(f"- {e}" for e in self.experience)
        return "\n".join(lines)


def extract_github_username(value: str | None) -> str | None:
    """Accepts a profile URL or a bare username."""
    if not value:
        return None
    match = _URL_PATTERN.search(value)
    if match:
        return match.group(1)
    candidate = value.strip()
    if _USERNAME_PATTERN.match(candidate):
        return candidate
    return None


def _years_since(created_at: str | None) -> int | None:
    if not created_at:
        return None
    try:
        created = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
    except ValueError:
        return None
    return max(0, (utcnow() - created).days // 365)


class GitHubClient:
    def __init__(
        self,
        *,
        token: str | None = None,
        base_url: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.token = token if token is not None else settings.GITHUB_TOKEN
        self.base_url = (base_url or settings.GITHUB_API_BASE_URL).rstrip("/")
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get(self, client: httpx.Client, path_or_url: str, username: str):
        response = client.get(path_or_url)
        if response.status_code == 404:
            raise GitHubUserNotFound(f'GitHub user "{username}" not found')
        if response.status_code == 403:
            raise GitHubRateLimited(
                "GitHub rate limit exceeded. Set GITHUB_TOKEN to increase the limit."
            )
        response.raise_for_status()
        return response.json()

    def fetch_profile(self, username: str) -> GitHubProfile:
        try:
            with httpx.Client(
                base_url=self.base_url,
                headers=self._headers(),
                timeout=settings.GITHUB_TIMEOUT_SECONDS,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                user = self._get(client, f"/users/{username}", username)
                repos = self._get(
                    client,
                    f"/users/{username}/repos?sort=stars&per_page={REPOS_PER_PROFILE}",
                    username,
                ) or []

                totals: dict[str, int] = {}
                for repo in repos[:REPOS_FOR_LANGUAGES]:
                    url = repo.get("languages_url")
                    if not url:
                        continue
                    try:
                        langs = client.get(url)
                        langs.raise_for_status()
                        data = langs.json() or {}
                    except httpx.HTTPError:
                        logger.warning("GitHub languages lookup failed: repo=%s", repo.get("name"))
                        continue
                    for lang, size in data.items():
                        totals[lang] = totals.get(lang, 0) + int(size or 0)
        except GitHubError:
            raise
        except httpx.HTTPError as exc:
            raise GitHubError(f"GitHub API error: {exc}") from exc

        languages = dict(sorted(totals.items(), key=lambda item: item[1], reverse=True))

        skills: list[str] = []
        for skill in list(languages) + [t for r in repos for t in (r.get("topics") or [])]:
            if skill not in skills:
                skills.append(skill)

        experience = [
            f"{r.get('name')}: {r.get('description') or 'No description'} ({int(r.get('stargazers_count') or 0)} stars)"
            for r in repos
            if r.get("description") or int(r.get("stargazers_count") or 0) > 0
        ]
        projects = [
            f"{r.get('name')} ({r.get('language') or 'Unknown'}, {int(r.get('stargazers_count') or 0)} stars): "
            f"{r.get('description') or 'No description'}"
            for r in repos
        ]

        return GitHubProfile(
            username=username,
            name=user.get("name") or username,
            url=f"https://github.com/{username}",
            bio=user.get("bio") or None,
            avatar_url=user.get("avatar_url") or None,
            skills=skills,
            experience=experience,
            projects=projects,
            languages=languages,
            years_of_experience=_years_since(user.get("created_at")),
        )
