"""
Heuristic analytics over raw GitHub repository data.

Everything here is a pure function of the upstream JSON (plain dicts as
returned by the REST API) and an optional `now`, so results are
reproducible in tests.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional

SECONDS_PER_DAY = 86400


# -----------------------------
# Utility helpers
# -----------------------------
def _now_utc() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def parse_timestamp(s: Optional[str]) -> Optional[dt.datetime]:
    if not s:
        return None
    try:
        parsed = dt.datetime.fromisoformat(s.replace("Z", "+00:00"))
    except (AttributeError, TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def _days_since(s: Optional[str], now: dt.datetime) -> Optional[float]:
    when = parse_timestamp(s)
    if when is None:
        return None
    return (now - when).total_seconds() / SECONDS_PER_DAY


def _count(repo: Dict[str, Any], field: str) -> int:
    return int(repo.get(field) or 0)


def _commit_date(commit: Dict[str, Any]) -> Optional[dt.datetime]:
    author = ((commit.get("commit") or {}).get("author")) or {}
    return parse_timestamp(author.get("date"))


def _commit_author(commit: Dict[str, Any]) -> str:
    author = ((commit.get("commit") or {}).get("author")) or {}
    return author.get("name") or "unknown"


# -----------------------------
# Health score
# -----------------------------
def calculate_project_health(
    repo: Dict[str, Any], contributors: List[Dict[str, Any]], now: Optional[dt.datetime] = None
) -> int:
    """
    Additive 0-100 score: base 50, adjusted for recency, popularity,
    contributor count and documentation/licensing.
    """
    now = now or _now_utc()
    score = 50

    days = _days_since(repo.get("updated_at"), now)
    if days is not None:
        if days < 7:
            score += 20
        elif days < 30:
            score += 10
        elif days > 365:
            score -= 20

    if _count(repo, "stargazers_count") > 1000:
        score += 15
    if _count(repo, "forks_count") > 100:
        score += 10
    if len(contributors or []) > 5:
        score += 10

    if repo.get("has_wiki"):
        score += 5
    if repo.get("license"):
        score += 5

    return int(_clamp(score, 0, 100))


# -----------------------------
# Activity pattern
# -----------------------------
def analyze_activity_pattern(commits: List[Dict[str, Any]], now: Optional[dt.datetime] = None) -> Dict[str, Any]:
    """
    Classify how recent the sampled commits are.

    The sample is a single small page of the most recent commits, so the
    label describes recency of that page rather than long-run frequency.
    """
    now = now or _now_utc()
    dates = [d for d in (_commit_date(c) for c in (commits or [])) if d is not None]
    if not dates:
        return {"pattern": "insufficient-data"}

    ages = [int((now - d).total_seconds() // SECONDS_PER_DAY) for d in dates]
    avg_age = sum(ages) / len(ages)

    if avg_age < 7:
        pattern = "very-active"
    elif avg_age < 30:
        pattern = "active"
    elif avg_age < 90:
        pattern = "moderate"
    else:
        pattern = "low-activity"

    return {
        "pattern": pattern,
        "avg_days_since_commit": round(avg_age),
        "recent_commits": len(dates),
    }


# -----------------------------
# Contributor diversity
# -----------------------------
def analyze_contributor_diversity(contributors: List[Dict[str, Any]]) -> Dict[str, Any]:
    if not contributors:
        return {"diversity": "no-data", "top_contributor_dominance": 0}

    # Upstream order is not trusted; sorted() is stable so equal counts keep their order.
    ranked = sorted(contributors, key=lambda c: int(c.get("contributions") or 0), reverse=True)
    total = sum(int(c.get("contributions") or 0) for c in ranked)
    top = int(ranked[0].get("contributions") or 0)
    top_percent = (top / total) * 100 if total else 0.0

    if top_percent > 80:
        diversity = "single-maintainer"
    elif top_percent > 60:
        diversity = "few-maintainers"
    elif top_percent > 40:
        diversity = "core-team"
    else:
        diversity = "balanced"

    return {
        "diversity": diversity,
        "top_contributor_dominance": round(top_percent),
        "total_contributors": len(contributors),
    }


# -----------------------------
# Insights & recommendations
# -----------------------------
def generate_codebase_insights(repo: Dict[str, Any]) -> List[str]:
    insights: List[str] = []
    stars = _count(repo, "stargazers_count")

    if _count(repo, "size") > 10000:
        insights.append("Large codebase - consider modularization")
    if stars > 0 and _count(repo, "open_issues_count") > stars * 0.1:
        insights.append("High issue-to-star ratio - may need attention")
    if stars > 0 and _count(repo, "forks_count") > stars * 0.3:
        insights.append("High fork ratio - active development community")
    if not repo.get("license"):
        insights.append("No license specified - consider adding one")

    return insights or ["Well-maintained repository"]


def generate_recommendations(
    repo: Dict[str, Any], contributors: List[Dict[str, Any]], now: Optional[dt.datetime] = None
) -> List[str]:
    now = now or _now_utc()
    recommendations: List[str] = []

    days = _days_since(repo.get("updated_at"), now)
    if days is not None and days > 90:
        recommendations.append("Consider more frequent updates to maintain community engagement")
    if len(contributors or []) < 3:
        recommendations.append("Encourage more contributors to improve project sustainability")
    if not repo.get("has_wiki") and _count(repo, "stargazers_count") > 100:
        recommendations.append("Add documentation wiki for better user experience")
    if _count(repo, "open_issues_count") > 50:
        recommendations.append("Address open issues to improve project health")

    return recommendations or ["Project appears well-maintained"]


# -----------------------------
# Commit frequency
# -----------------------------
def analyze_commit_frequency(commits: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Bucket a page of commits by date, author and hour of day.

    Dates and hours are taken in the offset carried by each commit timestamp
    (GitHub reports UTC), never in the host's local time zone.
    """
    if not commits:
        return None

    by_date: Dict[str, int] = {}
    by_author: Dict[str, int] = {}
    by_hour = [0] * 24

    for c in commits:
        author = _commit_author(c)
        by_author[author] = by_author.get(author, 0) + 1

        when = _commit_date(c)
        if when is None:
            continue
        key = when.date().isoformat()
        by_date[key] = by_date.get(key, 0) + 1
        by_hour[when.hour] += 1

    most_active_day = None
    if by_date:
        # max() keeps the first maximum in insertion (input) order
        day = max(by_date, key=lambda k: by_date[k])
        most_active_day = {"date": day, "commits": by_date[day]}

    busiest_hour = max(range(24), key=lambda h: by_hour[h])
    most_active_hour = (
        {"hour": busiest_hour, "count": by_hour[busiest_hour]} if by_hour[busiest_hour] > 0 else None
    )

    return {
        "total_commits": len(commits),
        "commits_by_date": by_date,
        "commits_by_author": by_author,
        "commits_by_hour": by_hour,
        "most_active_day": most_active_day,
        "most_active_hour": most_active_hour,
        "avg_commits_per_day": len(commits) / max(1, len(by_date)),
    }


# -----------------------------
# Combined analysis
# -----------------------------
def analyze_repo_context(
    repo: Dict[str, Any],
    contributors: List[Dict[str, Any]],
    commits: List[Dict[str, Any]],
    now: Optional[dt.datetime] = None,
) -> Dict[str, Any]:
    now = now or _now_utc()
    return {
        "project_health": calculate_project_health(repo, contributors, now=now),
        "activity_pattern": analyze_activity_pattern(commits, now=now),
        "contributor_diversity": analyze_contributor_diversity(contributors),
        "codebase_insights": generate_codebase_insights(repo),
        "recommendations": generate_recommendations(repo, contributors, now=now),
    }
