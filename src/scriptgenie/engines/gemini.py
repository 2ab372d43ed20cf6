"""
Gemini adapter — script analysis, TTS and image generation.

Talks to the Generative Language REST API with httpx rather than the
SDK. Each public method is one logical request; the key it runs with is
chosen by KeyManager rotation over the Gemini pool, and a fresh request
is sent per attempt with that key.

TTS returns raw 16-bit PCM at 24 kHz, transcoded locally to WAV.
"""

import base64
import json
import logging
import mimetypes
from dataclasses import dataclass
from typing import Any

import httpx

from scriptgenie.audio.wav import (
    WAV_MIME_TYPE,
    decode_pcm_base64,
    pcm_to_wav,
    wav_duration_sec,
)
from scriptgenie.config import (
    DEFAULT_HTTP_TIMEOUT_SEC,
    DEFAULT_SAMPLE_RATE,
    GEMINI_API_BASE,
    GEMINI_API_VERSION,
    GEMINI_DEFAULT_VOICE,
    GEMINI_IMAGE_MODEL,
    GEMINI_MAX_OUTPUT_TOKENS,
    GEMINI_TEXT_MODEL,
    GEMINI_TTS_MODEL,
)
from scriptgenie.engines.base import (
    ProviderError,
    SpeechEngine,
    SpeechRequest,
    SpeechResult,
)
from scriptgenie.keys.manager import KeyManager
from scriptgenie.keys.models import Provider
from scriptgenie.segments import AnalysisItem, parse_analysis_json
from scriptgenie.utils.security import redact_api_keys

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = """\
You are an expert script assistant.
1. Split the following script into natural, semantic segments (sentences or short paragraphs suitable for TTS).
2. For EACH segment, generate a detailed image prompt in the style of **"Modern Flat Vector Illustration / Cartoon Editorial"**.
   - **Visual Style**: Flat vector art, thick outlines, clean geometric shapes, bright saturated colors, minimal shading.
   - **Aesthetic**: Cartoon explainer style, conceptual storytelling, crisp digital art.
   - **Background**: Soft gradients, abstract elements, subtle glowing accents, uncluttered.
   - **Negative Constraints**: NO realistic textures, NO oil paint, NO brush strokes, NO noise/grain, NO 3D rendering.
   - **Subject**: Describe the action or metaphor using simplified, confident cartoon characters.
3. Return ONLY a JSON array.

Script:
{script}
"""

ANALYSIS_SCHEMA: dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "text": {
                "type": "STRING",
                "description": "The segment of the script",
            },
            "image_prompt": {
                "type": "STRING",
                "description": (
                    "A detailed visual description for image generation "
                    "(Flat Vector Cartoon style)"
                ),
            },
        },
        "required": ["text", "image_prompt"],
    },
}


@dataclass
class GeneratedImage:
    """One generated image, decoded from the response."""

    data: bytes
    mime_type: str = "image/png"

    @property
    def extension(self) -> str:
        """File extension for the MIME type; unknown types are saved as png."""
        mime = self.mime_type.split(";")[0].strip().lower()
        guessed = mimetypes.guess_extension(mime)
        return guessed.lstrip(".") if guessed else "png"


class GeminiClient:
    """REST client for the three Gemini calls the app makes."""

    def __init__(
        self,
        keys: KeyManager,
        *,
        api_base: str | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.keys = keys
        self.api_base = (api_base or GEMINI_API_BASE).rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    # ──────────────────────────────────────────────
    # Public calls
    # ──────────────────────────────────────────────

    async def analyze_script(self, script_text: str) -> list[AnalysisItem]:
        """
        Split a script into segments with an image prompt each.

        Raises:
            ProviderError: empty response.
            AnalysisTruncatedError: response JSON was cut off.
        """
        payload = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": ANALYSIS_PROMPT.format(script=script_text)}],
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "maxOutputTokens": GEMINI_MAX_OUTPUT_TOKENS,
                "responseSchema": ANALYSIS_SCHEMA,
            },
        }

        async def _attempt(api_key: str) -> list[AnalysisItem]:
            response = await self._generate_content(api_key, GEMINI_TEXT_MODEL, payload)
            text = _extract_text(response)
            if not text:
                raise ProviderError("Empty response received from Gemini.")
            return parse_analysis_json(text)

        return await self.keys.execute_with_rotation(Provider.GEMINI, _attempt)

    async def generate_speech(
        self,
        text: str,
        voice: str = GEMINI_DEFAULT_VOICE,
    ) -> SpeechResult:
        """Synthesize speech and return it as a 24 kHz mono WAV."""
        payload = {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {
                        "prebuiltVoiceConfig": {"voiceName": voice},
                    },
                },
            },
        }

        async def _attempt(api_key: str) -> SpeechResult:
            response = await self._generate_content(api_key, GEMINI_TTS_MODEL, payload)
            inline = _first_inline_data(response)
            if inline is None or not inline.get("data"):
                raise ProviderError("No audio data returned from Gemini.")

            samples = decode_pcm_base64(inline["data"], DEFAULT_SAMPLE_RATE)
            wav = pcm_to_wav(samples, DEFAULT_SAMPLE_RATE)
            return SpeechResult(
                audio=wav,
                mime_type=WAV_MIME_TYPE,
                extension="wav",
                sample_rate=DEFAULT_SAMPLE_RATE,
                duration_sec=wav_duration_sec(wav),
            )

        return await self.keys.execute_with_rotation(Provider.GEMINI, _attempt)

    async def generate_image(self, prompt: str) -> GeneratedImage:
        """Generate one illustration for an image prompt."""
        payload = {"contents": [{"parts": [{"text": prompt}]}]}

        async def _attempt(api_key: str) -> GeneratedImage:
            response = await self._generate_content(api_key, GEMINI_IMAGE_MODEL, payload)
            parts = _candidate_parts(response)
            if not parts:
                raise ProviderError("No content generated")

            for part in parts:
                inline = part.get("inlineData") or {}
                if inline.get("data"):
                    return GeneratedImage(
                        data=base64.b64decode(inline["data"]),
                        mime_type=inline.get("mimeType") or "image/png",
                    )

            raise ProviderError("No image data found in response.")

        return await self.keys.execute_with_rotation(Provider.GEMINI, _attempt)

    # ──────────────────────────────────────────────
    # HTTP
    # ──────────────────────────────────────────────

    async def _generate_content(
        self,
        api_key: str,
        model: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        client = await self._get_client()
        url = f"{self.api_base}/{GEMINI_API_VERSION}/models/{model}:generateContent"
        headers = {"x-goog-api-key": api_key, "Content-Type": "application/json"}
        logger.debug("POST %s headers=%s", url, redact_api_keys(headers))

        response = await client.post(url, json=payload, headers=headers)

        if response.status_code >= 400:
            raise ProviderError(
                f"Gemini API error {response.status_code}: {_error_message(response)}"
            )

        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise ProviderError(f"Gemini returned a non-JSON body: {e}") from e


class GeminiSpeechEngine(SpeechEngine):
    """Gemini TTS behind the SpeechEngine contract."""

    def __init__(self, keys: KeyManager, client: GeminiClient | None = None) -> None:
        super().__init__(keys)
        self.client = client or GeminiClient(keys)

    @property
    def name(self) -> str:
        return "gemini"

    @property
    def provider(self) -> Provider:
        return Provider.GEMINI

    async def synthesize(self, request: SpeechRequest) -> SpeechResult:
        return await self.client.generate_speech(
            request.text,
            voice=request.voice or GEMINI_DEFAULT_VOICE,
        )

    async def list_voices(self) -> list[dict[str, str]]:
        return [{"id": GEMINI_DEFAULT_VOICE, "name": GEMINI_DEFAULT_VOICE}]

    async def aclose(self) -> None:
        await self.client.aclose()


# ──────────────────────────────────────────────
# Response helpers
# ──────────────────────────────────────────────


def _candidate_parts(response: dict[str, Any]) -> list[dict[str, Any]]:
    candidates = response.get("candidates") or []
    if not candidates:
        return []
    content = candidates[0].get("content") or {}
    return content.get("parts") or []


def _extract_text(response: dict[str, Any]) -> str:
    return "".join(p.get("text", "") for p in _candidate_parts(response))


def _first_inline_data(response: dict[str, Any]) -> dict[str, Any] | None:
    parts = _candidate_parts(response)
    if not parts:
        return None
    return parts[0].get("inlineData")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except json.JSONDecodeError:
        return response.reason_phrase or response.text
    if not isinstance(body, dict):
        return response.reason_phrase
    return (body.get("error") or {}).get("message") or response.reason_phrase
