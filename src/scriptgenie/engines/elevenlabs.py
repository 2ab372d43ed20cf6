"""
ElevenLabs TTS engine adapter.

High-quality cloud TTS. Requires a key from https://elevenlabs.io/.
Returns MP3 bytes as-is (no local transcoding).
"""

import json
import logging

import httpx

from scriptgenie.config import (
    DEFAULT_HTTP_TIMEOUT_SEC,
    ELEVENLABS_API_BASE,
    ELEVENLABS_DEFAULT_VOICE_ID,
    ELEVENLABS_MODEL,
    ELEVENLABS_SIMILARITY_BOOST,
    ELEVENLABS_STABILITY,
)
from scriptgenie.engines.base import (
    ProviderError,
    SpeechEngine,
    SpeechRequest,
    SpeechResult,
)
from scriptgenie.keys.manager import KeyManager
from scriptgenie.keys.models import Provider

logger = logging.getLogger(__name__)


class ElevenLabsEngine(SpeechEngine):
    """ElevenLabs cloud TTS adapter."""

    def __init__(
        self,
        keys: KeyManager,
        *,
        base_url: str = ELEVENLABS_API_BASE,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(keys)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "elevenlabs"

    @property
    def provider(self) -> Provider:
        return Provider.ELEVENLABS

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def synthesize(self, request: SpeechRequest) -> SpeechResult:
        """Generate MP3 speech using the ElevenLabs API."""
        voice_id = request.voice or ELEVENLABS_DEFAULT_VOICE_ID
        payload = {
            "text": request.text,
            "model_id": ELEVENLABS_MODEL,
            "voice_settings": {
                "stability": ELEVENLABS_STABILITY,
                "similarity_boost": ELEVENLABS_SIMILARITY_BOOST,
            },
        }
        if request.params:
            payload.update(request.params)

        async def _attempt(api_key: str) -> SpeechResult:
            client = await self._get_client()
            response = await client.post(
                f"{self.base_url}/text-to-speech/{voice_id}",
                json=payload,
                headers={
                    "Accept": "audio/mpeg",
                    "xi-api-key": api_key,
                },
            )
            if response.status_code >= 400:
                raise ProviderError(f"ElevenLabs API Error: {_error_detail(response)}")

            return SpeechResult(
                audio=response.content,
                mime_type="audio/mpeg",
                extension="mp3",
                sample_rate=44100,  # ElevenLabs standard
            )

        return await self.keys.execute_with_rotation(Provider.ELEVENLABS, _attempt)

    async def list_voices(self) -> list[dict[str, str]]:
        """List voices available to the first working key."""

        async def _attempt(api_key: str) -> list[dict[str, str]]:
            client = await self._get_client()
            response = await client.get(
                f"{self.base_url}/voices",
                headers={"xi-api-key": api_key},
            )
            if response.status_code >= 400:
                raise ProviderError(f"ElevenLabs API Error: {_error_detail(response)}")

            return [
                {
                    "id": voice["voice_id"],
                    "name": voice["name"],
                    "category": voice.get("category", "unknown"),
                }
                for voice in response.json().get("voices", [])
            ]

        return await self.keys.execute_with_rotation(Provider.ELEVENLABS, _attempt)

    async def aclose(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None


def _error_detail(response: httpx.Response) -> str:
    """`detail.message` from an ElevenLabs error body, else the HTTP reason."""
    try:
        body = response.json()
    except json.JSONDecodeError:
        return response.reason_phrase
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, dict) and detail.get("message"):
        return detail["message"]
    if isinstance(detail, str):
        return detail
    return response.reason_phrase
