"""System-wide constants. All magic numbers and strings live here."""

from __future__ import annotations

# ── Allowance Sentinels ──────────────────────────────────────────
NO_ACCESS = 0
UNLIMITED = -1

# ── Tier Names ───────────────────────────────────────────────────
TIER_FREE = "Free"
TIER_HOBBY = "Hobby"
TIER_AMADOR = "Amador"
TIER_PROFISSIONAL = "Profissional"

# ── Feature Keys ─────────────────────────────────────────────────
FEATURE_STORY = "story_generation"
FEATURE_CHAPTER = "chapter_generation"
FEATURE_CHARACTER = "character_generation"
FEATURE_COVER = "cover_generation"
FEATURE_CHAT = "ai_chat"
FEATURE_EXPORT_PDF = "export_pdf"
FEATURE_EXPORT_DOCX = "export_docx"

# ── HTTP ─────────────────────────────────────────────────────────
INTERNAL_TOKEN_HEADER = "X-Internal-Token"
API_VERSION = "0.1.0"
