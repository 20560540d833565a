"""
GitHub Repository Analyzer (Flask)

What it does:
- Accepts a GitHub repository URL
- Fetches metadata, contributors, recent commits, 52 weeks of commit activity,
  languages and releases from the GitHub REST API, concurrently
- Derives a 0-100 health score, activity pattern, contributor diversity,
  codebase insights and recommendations
- Asks OpenAI for a 2-3 sentence summary (optional, falls back to a fixed sentence)
- Serves a dashboard page that renders the merged JSON

Setup:
  pip install -e .

Run:
  export GITHUB_TOKEN="github_pat_..."   # optional, raises the rate limit
  export OPENAI_API_KEY="sk-..."          # optional, enables the AI summary
  python app.py
  open http://localhost:5000

Endpoints:
  GET  /                          -> renders templates/index.html (if present), else fallback page
  GET  /api/analyze?url=          -> returns JSON analysis
  POST /api/analyze               -> accepts form-data or JSON { "url": "..." }
  GET  /api/rate-limit            -> GitHub rate limit status
  GET  /health                    -> liveness
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, List

from flask import Flask, jsonify, render_template, request
from jinja2 import TemplateNotFound

import config
import github_api
import heuristics
import narrative
from analysis_cache import AnalysisCache

logger = logging.getLogger(__name__)

# -----------------------------
# Flask app
# -----------------------------
app = Flask(__name__)

analysis_cache = AnalysisCache(config.CACHE_TTL_SECONDS)


def _now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


# -----------------------------
# Response shaping
# -----------------------------
def _format_repository(r: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": r.get("name"),
        "full_name": r.get("full_name"),
        "description": r.get("description"),
        "stars": int(r.get("stargazers_count") or 0),
        "forks": int(r.get("forks_count") or 0),
        "watchers": int(r.get("watchers_count") or 0),
        "language": r.get("language"),
        "size": int(r.get("size") or 0),
        "created_at": r.get("created_at"),
        "updated_at": r.get("updated_at"),
        "html_url": r.get("html_url"),
        "open_issues": int(r.get("open_issues_count") or 0),
        "license": (r.get("license") or {}).get("name") or "No license",
        "default_branch": r.get("default_branch"),
        "is_private": bool(r.get("private")),
        "has_wiki": bool(r.get("has_wiki")),
        "has_pages": bool(r.get("has_pages")),
    }


def _format_contributors(contributors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "login": c.get("login"),
            "contributions": int(c.get("contributions") or 0),
            "avatar_url": c.get("avatar_url"),
            "html_url": c.get("html_url"),
        }
        for c in contributors
    ]


def _format_commits(commits: List[Dict[str, Any]], limit: int = 10) -> List[Dict[str, Any]]:
    out = []
    for c in commits[:limit]:
        info = c.get("commit") or {}
        author = info.get("author") or {}
        out.append(
            {
                "sha": (c.get("sha") or "")[:7],
                "message": (info.get("message") or "").split("\n")[0],
                "author": author.get("name"),
                "date": author.get("date"),
                "html_url": c.get("html_url"),
            }
        )
    return out


def _format_releases(releases: List[Dict[str, Any]], limit: int = 3) -> List[Dict[str, Any]]:
    return [
        {
            "name": r.get("name"),
            "tag_name": r.get("tag_name"),
            "published_at": r.get("published_at"),
            "html_url": r.get("html_url"),
        }
        for r in releases[:limit]
    ]


def _settled_or(bundle: Dict[str, github_api.Settled], name: str, default: Any) -> Any:
    slot = bundle.get(name)
    if slot is None or not slot.ok or slot.value is None:
        return default
    return slot.value


def analyze_repository(owner: str, repo: str) -> Dict[str, Any]:
    """
    Fetch everything for owner/repo and build the dashboard payload.
    Raises GitHubAPIError when the repository metadata cannot be fetched.
    """
    bundle = github_api.fetch_repository_bundle(owner, repo)

    repo_slot = bundle["repo"]
    if not repo_slot.ok:
        if isinstance(repo_slot.error, github_api.GitHubAPIError):
            raise repo_slot.error
        raise github_api.GitHubAPIError("Failed to fetch repository information") from repo_slot.error

    repo_data: Dict[str, Any] = repo_slot.value
    contributors = _settled_or(bundle, "contributors", [])
    commits = _settled_or(bundle, "commits", [])
    activity = _settled_or(bundle, "commit_activity", [])
    languages = _settled_or(bundle, "languages", {})
    releases = _settled_or(bundle, "releases", [])

    insights = heuristics.analyze_repo_context(repo_data, contributors, commits)
    summary = narrative.generate_summary(repo_data)

    return {
        "repository": _format_repository(repo_data),
        "contributors": _format_contributors(contributors),
        "recent_commits": _format_commits(commits),
        "languages": languages,
        "releases": _format_releases(releases),
        "analytics": {
            "commit_frequency": heuristics.analyze_commit_frequency(commits),
            "commit_activity": activity,
            "insights": insights,
        },
        "ai_insights": {
            "summary": summary,
            "generated_at": _now_iso(),
        },
        "analyzed_at": _now_iso(),
    }


# -----------------------------
# Flask routes
# -----------------------------
@app.route("/", methods=["GET"])
def home():
    try:
        return render_template("index.html")
    except TemplateNotFound:
        return (
            """
            <!doctype html>
            <html>
            <head><meta charset="utf-8"><title>Repository Analyzer</title></head>
            <body style="font-family: system-ui, -apple-system, Segoe UI, Roboto, sans-serif; padding: 24px;">
              <h2>Repository Analyzer API is running</h2>
              <p>Try: <code>/api/analyze?url=https://github.com/pallets/flask</code></p>
              <p>Add a template at <code>templates/index.html</code> to build the UI.</p>
            </body>
            </html>
            """,
            200,
            {"Content-Type": "text/html; charset=utf-8"},
        )


def _get_url_from_request() -> str:
    if request.method == "GET":
        return (request.args.get("url") or "").strip()
    if request.is_json:
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            return ""
        return str(payload.get("url") or "").strip()
    return (request.form.get("url") or "").strip()


@app.route("/api/analyze", methods=["GET", "POST"])
def api_analyze():
    url = _get_url_from_request()

    if not url:
        return jsonify({"error": "GitHub URL is required"}), 400

    try:
        owner, repo = github_api.parse_github_url(url)
    except github_api.InvalidRepoURL as e:
        return jsonify({"error": str(e)}), 400

    logger.info("Analyzing %s/%s", owner, repo)

    key = analysis_cache.make_key(f"{owner}/{repo}")
    cached = analysis_cache.get(key)
    if cached is not None:
        return jsonify({"cached": True, **cached})

    try:
        analysis = analyze_repository(owner, repo)
        analysis_cache.put(key, analysis)
        return jsonify({"cached": False, **analysis})
    except github_api.GitHubAPIError as e:
        logger.warning("Analysis of %s/%s failed: %s", owner, repo, e)
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        logger.exception("Unexpected error analyzing %s/%s", owner, repo)
        return jsonify({"error": "Internal server error", "timestamp": _now_iso()}), 500


@app.route("/api/rate-limit", methods=["GET"])
def api_rate_limit():
    try:
        return jsonify(github_api.get_rate_limit())
    except (github_api.GitHubAPIError, ValueError) as e:
        logger.warning("Rate limit lookup failed: %s", e)
        return jsonify({"error": "Failed to fetch rate limit info"}), 500


@app.route("/health", methods=["GET"])
@app.route("/healthz", methods=["GET"])
def health():
    return jsonify(
        {
            "status": "OK",
            "timestamp": _now_iso(),
            "token_configured": bool(config.GITHUB_TOKEN),
            "ai_configured": bool(config.OPENAI_API_KEY),
            "cache_ttl_seconds": config.CACHE_TTL_SECONDS,
        }
    )


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=config.PORT, debug=config.DEBUG)
