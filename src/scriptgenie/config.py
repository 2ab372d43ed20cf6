"""
Global configuration, constants, and path resolution.

All magic numbers and default values live here.
Service code imports from config and never hardcodes.
"""

import os
from pathlib import Path
from typing import Final

# ──────────────────────────────────────────────
# Directory Layout
# ──────────────────────────────────────────────

PROJECTS_ROOT: Final[Path] = Path("PROJECTS")

PROJECT_DIRS: Final[list[str]] = [
    "audio",
    "images",
    "export",
]

# Durable key store lives outside any project so keys are shared.
SCRIPTGENIE_HOME: Final[Path] = Path(
    os.getenv("SCRIPTGENIE_HOME", str(Path.home() / ".scriptgenie"))
)
KEYS_DIR_NAME: Final[str] = "keys"

# ──────────────────────────────────────────────
# Credential Store
# ──────────────────────────────────────────────

KEYS_STORAGE_KEY: Final[str] = "scriptgenie_api_keys"

# Legacy entries the browser build used to inject from the environment.
LEGACY_SYSTEM_KEY_ID: Final[str] = "sys-env-key"
LEGACY_SYSTEM_LABEL: Final[str] = "System Default"

# Fixed prefix of every "no keys" error so callers can prompt for a key.
NO_KEYS_MARKER: Final[str] = "No enabled API keys"

DEFAULT_LABEL_PREFIX_CHARS: Final[int] = 4

# ──────────────────────────────────────────────
# Audio
# ──────────────────────────────────────────────

DEFAULT_SAMPLE_RATE: Final[int] = 24000
DEFAULT_CHANNELS: Final[int] = 1
WAV_HEADER_BYTES: Final[int] = 44
PCM_BITS_PER_SAMPLE: Final[int] = 16

# ──────────────────────────────────────────────
# Gemini
# ──────────────────────────────────────────────

GEMINI_API_BASE: Final[str] = os.getenv(
    "GEMINI_API_BASE", "https://generativelanguage.googleapis.com"
)
GEMINI_API_VERSION: Final[str] = "v1beta"

GEMINI_TEXT_MODEL: Final[str] = "gemini-3-flash-preview"
GEMINI_TTS_MODEL: Final[str] = "gemini-2.5-flash-preview-tts"
GEMINI_IMAGE_MODEL: Final[str] = "gemini-2.5-flash-image"

GEMINI_DEFAULT_VOICE: Final[str] = "Kore"
GEMINI_MAX_OUTPUT_TOKENS: Final[int] = 8192

# ──────────────────────────────────────────────
# ElevenLabs
# ──────────────────────────────────────────────

ELEVENLABS_API_BASE: Final[str] = "https://api.elevenlabs.io/v1"
ELEVENLABS_MODEL: Final[str] = "eleven_monolingual_v1"
ELEVENLABS_DEFAULT_VOICE_ID: Final[str] = "21m00Tcm4TlvDq8ikWAM"  # Rachel
ELEVENLABS_STABILITY: Final[float] = 0.5
ELEVENLABS_SIMILARITY_BOOST: Final[float] = 0.75

# ──────────────────────────────────────────────
# HTTP
# ──────────────────────────────────────────────

DEFAULT_HTTP_TIMEOUT_SEC: Final[float] = 120.0

# ──────────────────────────────────────────────
# Batch Generation
# ──────────────────────────────────────────────

DEFAULT_AUDIO_BATCH_DELAY_SEC: Final[float] = 0.2
DEFAULT_IMAGE_BATCH_DELAY_SEC: Final[float] = 1.0

# ──────────────────────────────────────────────
# Export
# ──────────────────────────────────────────────

EXPORT_SHEET_NAME: Final[str] = "script-genie-export.csv"
EXPORT_IMAGES_ZIP: Final[str] = "script-genie-images.zip"
EXPORT_AUDIO_ZIP: Final[str] = "script-genie-audio.zip"
EXPORT_JSON_NAME: Final[str] = "script-genie-export.json"

# ──────────────────────────────────────────────
# Server
# ──────────────────────────────────────────────

API_PORT: Final[int] = 4002
