"""Crawler policy and terms of service served to bots, scrapers and viewers.

The policy is a legal signal rather than technical enforcement; the rate
limit on this router is what actually slows bulk collection down.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, PlainTextResponse

from app.core.rate_limit import enforce_rate_limit

router = APIRouter(tags=["Policy"], dependencies=[Depends(enforce_rate_limit)])

# Crawlers known to collect images for model training
AI_CRAWLERS = (
    "GPTBot",
    "ChatGPT-User",
    "CCBot",
    "anthropic-ai",
    "Google-Extended",
    "Bytespider",
    "Amazonbot",
    "FacebookBot",
)


def render_robots_txt(crawlers: tuple[str, ...] = AI_CRAWLERS) -> str:
    lines = [
        "# QRart Platform - Encoded Art Viewer",
        "#",
        "# NOTICE: All artwork served through this platform is protected.",
        "# Automated scraping, AI training, and dataset creation are PROHIBITED.",
        "",
        "User-agent: *",
        "Disallow: /api/artworks",
    ]
    for crawler in crawlers:
        lines += ["", f"User-agent: {crawler}", "Disallow: /"]
    return "\n".join(lines) + "\n"


ROBOTS_TXT = render_robots_txt()


@router.get("/robots.txt", response_class=PlainTextResponse)
def robots_txt() -> str:
    return ROBOTS_TXT


PROHIBITED_USES = (
    ("AI Training", "Using any artwork to train, fine-tune, or develop machine learning models."),
    ("Dataset Creation", "Including artwork in any dataset or corpus intended for machine learning."),
    ("Automated Scraping", "Using bots or scripts to bulk download or collect artwork."),
    ("Redistribution", "Sharing, reselling, or redistributing artwork without the artist's permission."),
    ("Commercial Use", "Using artwork commercially without a licensing agreement with the artist."),
)


def render_terms_html(updated: str | None = None) -> str:
    updated = updated or datetime.now(timezone.utc).date().isoformat()
    prohibited = "\n".join(
        f"      <li><strong>{title}:</strong> {text}</li>" for title, text in PROHIBITED_USES
    )
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>Terms of Service - QRart Platform</title>
</head>
<body>
  <h1>QRart Platform - Terms of Service</h1>
  <p>By accessing any content on this platform, you agree to be bound by these terms.</p>

  <h2>1. Purpose</h2>
  <p>QRart lets artists share their artwork through encoded markers while keeping
  control over distribution and usage rights.</p>

  <h2>2. Prohibited Uses</h2>
  <ul>
{prohibited}
  </ul>

  <h2>3. Authorized Use</h2>
  <p>Valid API key holders may view artwork through the official browser extension,
  display it for personal, non-commercial purposes, and share the marker text.</p>

  <h2>4. Artist Rights</h2>
  <p>All artwork remains the intellectual property of the respective artists.</p>

  <h2>5. Technical Measures</h2>
  <p>Access is rate limited, authenticated and logged, and may be audited.</p>

  <p>Last updated: {updated}</p>
</body>
</html>
"""


@router.get("/terms", response_class=HTMLResponse)
def terms() -> str:
    return render_terms_html()
