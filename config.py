"""
Environment-driven settings and logging setup shared by every module.

Values are read once at import time. A `.env` file in the working directory
is honoured via python-dotenv.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

# -----------------------------
# GitHub
# -----------------------------
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN", "").strip()
GITHUB_API_BASE = os.getenv("GITHUB_API_BASE", "https://api.github.com").rstrip("/")
API_VERSION = os.getenv("GITHUB_API_VERSION", "2022-11-28")
USER_AGENT = "repo-analyzer-flask"

GITHUB_TIMEOUT_SECONDS = float(os.getenv("GITHUB_TIMEOUT_SECONDS", "10"))
# /stats/commit_activity is computed lazily upstream and can be very slow
GITHUB_STATS_TIMEOUT_SECONDS = float(os.getenv("GITHUB_STATS_TIMEOUT_SECONDS", "30"))

CONTRIBUTORS_PAGE_SIZE = 10
COMMITS_PAGE_SIZE = 20
RELEASES_PAGE_SIZE = 5

# -----------------------------
# Analysis cache
# -----------------------------
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "300"))

# -----------------------------
# Narrative summary (OpenAI)
# -----------------------------
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TIMEOUT_SECONDS = float(os.getenv("OPENAI_TIMEOUT_SECONDS", "20"))

# -----------------------------
# Server
# -----------------------------
PORT = int(os.getenv("PORT", "5000"))
DEBUG = os.getenv("FLASK_DEBUG", "0").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
# Silence noisy libraries
for _name in ("urllib3", "httpx", "openai"):
    logging.getLogger(_name).setLevel(logging.WARNING)
