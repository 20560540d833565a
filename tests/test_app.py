"""
Route tests driven through the Flask test client with upstream calls patched out.
"""

import datetime as dt

import pytest

import app as app_module
import github_api
import narrative
from github_api import GitHubAPIError, Settled


def _iso(days_ago):
    when = dt.datetime.now(dt.timezone.utc) - dt.timedelta(days=days_ago)
    return when.strftime("%Y-%m-%dT%H:%M:%SZ")


REPO = {
    "name": "widget",
    "full_name": "acme/widget",
    "description": "Widgets",
    "stargazers_count": 2000,
    "forks_count": 150,
    "watchers_count": 2000,
    "language": "Python",
    "size": 500,
    "created_at": "2019-01-01T00:00:00Z",
    "updated_at": _iso(3),
    "html_url": "https://github.com/acme/widget",
    "open_issues_count": 4,
    "license": {"name": "MIT License"},
    "default_branch": "main",
    "private": False,
    "has_wiki": True,
    "has_pages": False,
}


def _bundle(**overrides):
    slots = {
        "repo": Settled(value=REPO),
        "contributors": Settled(value=[{"login": f"u{i}", "contributions": 10 - i} for i in range(8)]),
        "commits": Settled(
            value=[
                {
                    "sha": "0123456789abcdef",
                    "html_url": "https://github.com/acme/widget/commit/0123456",
                    "commit": {"message": "Fix bug\n\nDetails", "author": {"name": "ann", "date": _iso(1)}},
                }
            ]
        ),
        "commit_activity": Settled(value=[{"week": 1, "total": 2, "days": [0, 1, 1, 0, 0, 0, 0]}]),
        "languages": Settled(value={"Python": 1000}),
        "releases": Settled(value=[{"name": "v1", "tag_name": "v1.0", "published_at": _iso(10), "html_url": "x"}]),
    }
    slots.update(overrides)
    return slots


@pytest.fixture
def client(monkeypatch):
    app_module.analysis_cache.clear()
    monkeypatch.setattr(narrative, "generate_summary", lambda repo: "A widget library.")
    app_module.app.config["TESTING"] = True
    with app_module.app.test_client() as c:
        yield c
    app_module.analysis_cache.clear()


@pytest.fixture
def bundle(monkeypatch):
    calls = []
    state = {"bundle": _bundle()}

    def fake_fetch(owner, repo):
        calls.append((owner, repo))
        return state["bundle"]

    monkeypatch.setattr(github_api, "fetch_repository_bundle", fake_fetch)
    return state, calls


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "OK"
    assert "timestamp" in body


def test_missing_url(client, bundle):
    _, calls = bundle
    resp = client.post("/api/analyze", json={})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "GitHub URL is required"}
    assert calls == []


def test_malformed_url_makes_no_upstream_call(client, bundle):
    _, calls = bundle
    resp = client.post("/api/analyze", json={"url": "https://example.com/nope"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Invalid GitHub URL format"
    assert calls == []


def test_full_analysis(client, bundle):
    state, calls = bundle
    resp = client.post("/api/analyze", json={"url": "https://github.com/acme/widget.git"})
    assert resp.status_code == 200
    body = resp.get_json()

    assert calls == [("acme", "widget")]
    assert body["cached"] is False
    assert body["repository"]["full_name"] == "acme/widget"
    assert body["repository"]["license"] == "MIT License"
    assert body["recent_commits"][0] == {
        "sha": "0123456",
        "message": "Fix bug",
        "author": "ann",
        "date": state["bundle"]["commits"].value[0]["commit"]["author"]["date"],
        "html_url": "https://github.com/acme/widget/commit/0123456",
    }
    insights = body["analytics"]["insights"]
    assert insights["project_health"] == 100
    assert insights["activity_pattern"]["pattern"] == "very-active"
    assert body["analytics"]["commit_frequency"]["total_commits"] == 1
    assert body["analytics"]["commit_activity"][0]["total"] == 2
    assert body["languages"] == {"Python": 1000}
    assert body["releases"][0]["tag_name"] == "v1.0"
    assert body["ai_insights"]["summary"] == "A widget library."
    assert "analyzed_at" in body


def test_get_with_query_string(client, bundle):
    resp = client.get("/api/analyze?url=github.com/acme/widget")
    assert resp.status_code == 200


def test_second_request_is_cached(client, bundle):
    _, calls = bundle
    client.post("/api/analyze", json={"url": "https://github.com/acme/widget"})
    resp = client.post("/api/analyze", json={"url": "https://github.com/ACME/widget"})
    assert resp.get_json()["cached"] is True
    assert len(calls) == 1


def test_empty_best_effort_sources_still_complete(client, bundle):
    state, _ = bundle
    state["bundle"] = _bundle(
        contributors=Settled(error=GitHubAPIError("boom")),
        commits=Settled(value=[]),
        commit_activity=Settled(error=RuntimeError("slow")),
        languages=Settled(value={}),
        releases=Settled(value=[]),
    )
    resp = client.post("/api/analyze", json={"url": "https://github.com/acme/widget"})
    assert resp.status_code == 200
    body = resp.get_json()
    insights = body["analytics"]["insights"]
    assert insights["contributor_diversity"]["diversity"] == "no-data"
    assert insights["activity_pattern"] == {"pattern": "insufficient-data"}
    assert body["analytics"]["commit_frequency"] is None
    assert body["analytics"]["commit_activity"] == []
    assert body["contributors"] == []


@pytest.mark.parametrize("status", [404, 429, 504])
def test_metadata_failure_is_surfaced(client, bundle, status):
    state, _ = bundle
    state["bundle"] = _bundle(repo=Settled(error=GitHubAPIError("Repository not found or is private", status)))
    resp = client.post("/api/analyze", json={"url": "https://github.com/acme/widget"})
    assert resp.status_code == status
    assert resp.get_json()["error"] == "Repository not found or is private"


def test_unexpected_error_is_generic_500(client, monkeypatch):
    def explode(owner, repo):
        raise KeyError("surprise")

    monkeypatch.setattr(github_api, "fetch_repository_bundle", explode)
    resp = client.post("/api/analyze", json={"url": "https://github.com/acme/widget"})
    assert resp.status_code == 500
    body = resp.get_json()
    assert body["error"] == "Internal server error"
    assert "timestamp" in body


def test_rate_limit_proxy(client, monkeypatch):
    monkeypatch.setattr(github_api, "get_rate_limit", lambda: {"rate": {"remaining": 59}})
    assert client.get("/api/rate-limit").get_json() == {"rate": {"remaining": 59}}

    def fail():
        raise GitHubAPIError("down")

    monkeypatch.setattr(github_api, "get_rate_limit", fail)
    resp = client.get("/api/rate-limit")
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Failed to fetch rate limit info"}


def test_home_renders_dashboard(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert b"Repository Analyzer" in resp.data
