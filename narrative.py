"""
Short prose summary of a repository from an OpenAI chat completion.

The summary is decorative: any failure yields FALLBACK_SUMMARY and nothing
is raised to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from openai import OpenAI

import config
from heuristics import parse_timestamp

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY = "AI analysis is currently unavailable."

PROMPT_TEMPLATE = """Analyze this GitHub repository and provide a concise summary (2-3 sentences):

Name: {name}
Description: {description}
Stars: {stars}
Forks: {forks}
Primary Language: {language}
Created: {created}
Last Updated: {updated}
Open Issues: {open_issues}
License: {license}

Analysis:"""

_client: Optional[OpenAI] = None


def _get_client() -> Optional[OpenAI]:
    global _client
    if not config.OPENAI_API_KEY:
        return None
    if _client is None:
        _client = OpenAI(api_key=config.OPENAI_API_KEY, timeout=config.OPENAI_TIMEOUT_SECONDS, max_retries=0)
    return _client


def _short_date(s: Optional[str]) -> str:
    parsed = parse_timestamp(s)
    return parsed.date().isoformat() if parsed else "Unknown"


def build_prompt(repo: Dict[str, Any]) -> str:
    return PROMPT_TEMPLATE.format(
        name=repo.get("name") or "Unknown",
        description=repo.get("description") or "No description",
        stars=int(repo.get("stargazers_count") or 0),
        forks=int(repo.get("forks_count") or 0),
        language=repo.get("language") or "Not specified",
        created=_short_date(repo.get("created_at")),
        updated=_short_date(repo.get("updated_at")),
        open_issues=int(repo.get("open_issues_count") or 0),
        license=(repo.get("license") or {}).get("name") or "None",
    )


def generate_summary(repo: Dict[str, Any], client: Optional[OpenAI] = None) -> str:
    client = client or _get_client()
    if client is None:
        logger.info("OPENAI_API_KEY not configured; skipping narrative summary")
        return FALLBACK_SUMMARY

    try:
        response = client.chat.completions.create(
            model=config.OPENAI_MODEL,
            messages=[{"role": "user", "content": build_prompt(repo)}],
            max_tokens=150,
            temperature=0.7,
            top_p=0.75,
        )
        text = (response.choices[0].message.content or "").strip()
    except Exception as e:
        logger.error("Narrative summary failed for %s: %s", repo.get("full_name"), e)
        return FALLBACK_SUMMARY

    return text or FALLBACK_SUMMARY
