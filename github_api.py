"""
GitHub REST client used by the analyzer.

One attempt per call, no retries. Only the repository metadata call raises
to the caller; every other fetcher logs and falls back to an empty value.
"""

from __future__ import annotations

import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

import requests

import config

logger = logging.getLogger(__name__)

# GitHub owner names: alnum and hyphen, max 39. Repo names also allow "." and "_".
OWNER_RE = re.compile(r"^[A-Za-z0-9-]{1,39}$")
REPO_RE = re.compile(r"^[A-Za-z0-9._-]{1,100}$")
GITHUB_URL_RE = re.compile(r"github\.com[/:]([^/?#\s]+)/([^/?#\s]+)", re.IGNORECASE)

WEEK_SECONDS = 604800


class GitHubAPIError(RuntimeError):
    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.status_code = status_code


class InvalidRepoURL(ValueError):
    pass


class Settled(NamedTuple):
    """Outcome of one slot in a concurrent fetch batch."""

    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# -----------------------------
# URL parsing
# -----------------------------
def parse_github_url(url: str) -> Tuple[str, str]:
    """
    Extract (owner, repo) from anything that contains github.com/<owner>/<repo>.
    Scheme, www., trailing paths, query strings and a .git suffix are tolerated.
    """
    match = GITHUB_URL_RE.search((url or "").strip())
    if not match:
        raise InvalidRepoURL("Invalid GitHub URL format")

    owner, repo = match.group(1), match.group(2)
    if repo.lower().endswith(".git"):
        repo = repo[: -len(".git")]

    if not OWNER_RE.match(owner) or not REPO_RE.match(repo) or repo in (".", ".."):
        raise InvalidRepoURL("Invalid GitHub URL format")
    return owner, repo


# -----------------------------
# HTTP helpers
# -----------------------------
def _headers() -> Dict[str, str]:
    h = {
        "Accept": "application/vnd.github+json",
        "User-Agent": config.USER_AGENT,
        "X-GitHub-Api-Version": config.API_VERSION,
    }
    if config.GITHUB_TOKEN:
        h["Authorization"] = f"Bearer {config.GITHUB_TOKEN}"
    return h


def _get(path: str, *, params: Optional[dict] = None, timeout: Optional[float] = None) -> requests.Response:
    url = f"{config.GITHUB_API_BASE}{path}"
    try:
        resp = requests.get(
            url, headers=_headers(), params=params, timeout=timeout or config.GITHUB_TIMEOUT_SECONDS
        )
    except requests.Timeout as e:
        raise GitHubAPIError("Request timeout - GitHub API is slow", status_code=504) from e
    except requests.RequestException as e:
        raise GitHubAPIError(f"GitHub request failed: {e}") from e

    if resp.status_code == 404:
        raise GitHubAPIError("Repository not found or is private", status_code=404)
    if resp.status_code in (403, 429):
        raise GitHubAPIError("Rate limit exceeded. Please try again later.", status_code=429)
    if resp.status_code >= 400:
        raise GitHubAPIError(f"GitHub REST error {resp.status_code}: {resp.text[:300]}")
    return resp


def _request_json(path: str, *, params: Optional[dict] = None, timeout: Optional[float] = None) -> Any:
    return _get(path, params=params, timeout=timeout).json()


# -----------------------------
# Fetchers
# -----------------------------
def get_repo_info(owner: str, repo: str) -> Dict[str, Any]:
    try:
        data = _request_json(f"/repos/{owner}/{repo}")
    except GitHubAPIError as e:
        if e.status_code in (404, 429, 504):
            raise
        raise GitHubAPIError("Failed to fetch repository information", status_code=e.status_code) from e
    except ValueError as e:
        raise GitHubAPIError("Failed to fetch repository information") from e
    if not isinstance(data, dict):
        raise GitHubAPIError("Failed to fetch repository information")
    return data


def get_contributors(owner: str, repo: str) -> List[Dict[str, Any]]:
    try:
        data = _request_json(
            f"/repos/{owner}/{repo}/contributors", params={"per_page": config.CONTRIBUTORS_PAGE_SIZE}
        )
    except (GitHubAPIError, ValueError) as e:
        logger.warning("Failed to fetch contributors for %s/%s: %s", owner, repo, e)
        return []
    return data if isinstance(data, list) else []


def get_recent_commits(owner: str, repo: str) -> List[Dict[str, Any]]:
    try:
        data = _request_json(f"/repos/{owner}/{repo}/commits", params={"per_page": config.COMMITS_PAGE_SIZE})
    except (GitHubAPIError, ValueError) as e:
        logger.warning("Failed to fetch commits for %s/%s: %s", owner, repo, e)
        return []
    return data if isinstance(data, list) else []


def normalize_commit_activity(weeks: List[Any], now: Optional[float] = None) -> List[Dict[str, Any]]:
    """
    Coerce /stats/commit_activity buckets into {week, total, days}.
    Missing week stamps are back-filled from `now`, missing totals are summed from days.
    """
    now = int(time.time() if now is None else now)
    out: List[Dict[str, Any]] = []
    for index, week in enumerate(weeks):
        if not isinstance(week, dict):
            logger.debug("Dropping invalid commit activity bucket: %r", week)
            continue
        days = week.get("days")
        days = [int(d or 0) for d in days] if isinstance(days, list) else [0] * 7
        total = week.get("total")
        if not isinstance(total, int):
            total = sum(days)
        stamp = week.get("week") or now - (len(weeks) - index - 1) * WEEK_SECONDS
        out.append({"week": int(stamp), "total": int(total), "days": days})
    return out


def get_commit_activity(owner: str, repo: str) -> List[Dict[str, Any]]:
    try:
        resp = _get(f"/repos/{owner}/{repo}/stats/commit_activity", timeout=config.GITHUB_STATS_TIMEOUT_SECONDS)
        # 202 means GitHub is still computing the statistics
        if resp.status_code == 202:
            logger.info("Commit activity for %s/%s is still being computed upstream", owner, repo)
            return []
        data = resp.json()
        if not isinstance(data, list):
            return []
        logger.debug("Received %d weeks of commit activity for %s/%s", len(data), owner, repo)
        return normalize_commit_activity(data)
    except (GitHubAPIError, TypeError, ValueError) as e:
        logger.warning("Failed to fetch commit activity for %s/%s: %s", owner, repo, e)
        return []


def get_languages(owner: str, repo: str) -> Dict[str, int]:
    try:
        data = _request_json(f"/repos/{owner}/{repo}/languages")
    except (GitHubAPIError, ValueError) as e:
        logger.warning("Failed to fetch languages for %s/%s: %s", owner, repo, e)
        return {}
    return data if isinstance(data, dict) else {}


def get_releases(owner: str, repo: str) -> List[Dict[str, Any]]:
    try:
        data = _request_json(f"/repos/{owner}/{repo}/releases", params={"per_page": config.RELEASES_PAGE_SIZE})
    except (GitHubAPIError, ValueError) as e:
        logger.warning("Failed to fetch releases for %s/%s: %s", owner, repo, e)
        return []
    return data if isinstance(data, list) else []


def get_rate_limit() -> Dict[str, Any]:
    return _request_json("/rate_limit")


# -----------------------------
# Concurrent batch
# -----------------------------
FETCHERS: Dict[str, Callable[[str, str], Any]] = {
    "repo": get_repo_info,
    "contributors": get_contributors,
    "commits": get_recent_commits,
    "commit_activity": get_commit_activity,
    "languages": get_languages,
    "releases": get_releases,
}


def fetch_repository_bundle(owner: str, repo: str) -> Dict[str, Settled]:
    """
    Run every fetcher concurrently and wait for all of them to settle.
    A failing slot never cancels its siblings; its exception is kept in the result.
    """
    fetchers = dict(FETCHERS)
    results: Dict[str, Settled] = {}
    with ThreadPoolExecutor(max_workers=len(fetchers), thread_name_prefix="github-fetch") as pool:
        futures = {name: pool.submit(fn, owner, repo) for name, fn in fetchers.items()}
        wait(futures.values())

    for name, future in futures.items():
        error = future.exception()
        if error is not None:
            logger.warning("Fetch %r for %s/%s failed: %s", name, owner, repo, error)
            results[name] = Settled(error=error)
        else:
            results[name] = Settled(value=future.result())
    return results
