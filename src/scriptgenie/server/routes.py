"""
API Routes for ScriptGenie.

Handles key management, project CRUD and the generation workflow.
Credential errors (no keys, every key failed) propagate to the handlers
registered in app.py.
"""

import logging
from typing import Any, AsyncIterator, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel

from scriptgenie.engines.base import SpeechRequest as EngineSpeechRequest
from scriptgenie.engines.gemini import GeminiClient
from scriptgenie.engines.registry import EngineRegistry, build_registry
from scriptgenie.generate import (
    analyze_project,
    generate_segment_audio,
    generate_segment_image,
)
from scriptgenie.keys.manager import KeyManager
from scriptgenie.keys.models import ApiKey, Provider
from scriptgenie.keys.storage import JsonFileStore
from scriptgenie.project import (
    create_project,
    list_projects,
    load_project_json,
    project_exists,
)
from scriptgenie.utils.security import mask_key

router = APIRouter()
logger = logging.getLogger("scriptgenie.api")

_key_manager: KeyManager | None = None


# ──────────────────────────────────────────────
# Dependencies
# ──────────────────────────────────────────────


def get_key_manager() -> KeyManager:
    """Process-wide KeyManager over the durable key store."""
    global _key_manager
    if _key_manager is None:
        _key_manager = KeyManager(JsonFileStore())
    return _key_manager


async def get_registry(
    keys: KeyManager = Depends(get_key_manager),
) -> AsyncIterator[EngineRegistry]:
    registry = build_registry(keys)
    try:
        yield registry
    finally:
        await registry.aclose()


async def get_gemini_client(
    keys: KeyManager = Depends(get_key_manager),
) -> AsyncIterator[GeminiClient]:
    client = GeminiClient(keys)
    try:
        yield client
    finally:
        await client.aclose()


# ──────────────────────────────────────────────
# Request models
# ──────────────────────────────────────────────


class KeyCreateRequest(BaseModel):
    provider: str
    key: str
    label: Optional[str] = None


class KeyLabelRequest(BaseModel):
    label: Optional[str] = None


class ProjectCreateRequest(BaseModel):
    id: str
    script: Optional[str] = None


class AudioRequest(BaseModel):
    provider: str = Provider.GEMINI.value
    voice: Optional[str] = None


class SpeechRequest(BaseModel):
    text: str
    provider: str = Provider.GEMINI.value
    voice: Optional[str] = None


def _key_view(key: ApiKey) -> dict[str, Any]:
    """Public form of a key: never the full key material."""
    return {
        "id": key.id,
        "provider": key.provider.value,
        "label": key.display_label,
        "isEnabled": key.is_enabled,
        "maskedKey": mask_key(key.key),
    }


def _parse_provider(value: str) -> Provider:
    try:
        return Provider.parse(value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _require_project(project_id: str) -> None:
    if not project_exists(project_id):
        raise HTTPException(status_code=404, detail="Project not found")


# ──────────────────────────────────────────────
# Keys
# ──────────────────────────────────────────────


@router.get("/keys")
async def get_keys(
    provider: Optional[str] = None,
    keys: KeyManager = Depends(get_key_manager),
):
    """List keys, optionally for one provider."""
    providers = [_parse_provider(provider)] if provider else list(Provider)
    return [_key_view(k) for p in providers for k in keys.get_keys(p)]


@router.post("/keys", status_code=201)
async def add_key(
    request: KeyCreateRequest,
    keys: KeyManager = Depends(get_key_manager),
):
    """Add a key. Empty -> 400, duplicate -> 409."""
    provider = _parse_provider(request.provider)
    added = keys.add_key(request.key.strip(), provider, request.label)
    return _key_view(added)


@router.delete("/keys/{key_id}")
async def delete_key(key_id: str, keys: KeyManager = Depends(get_key_manager)):
    if keys.get_key(key_id) is None:
        raise HTTPException(status_code=404, detail="Key not found")
    keys.remove_key(key_id)
    return {"id": key_id, "message": "Key removed."}


@router.post("/keys/{key_id}/toggle")
async def toggle_key(key_id: str, keys: KeyManager = Depends(get_key_manager)):
    if keys.get_key(key_id) is None:
        raise HTTPException(status_code=404, detail="Key not found")
    keys.toggle_key_status(key_id)
    return _key_view(keys.get_key(key_id))


@router.put("/keys/{key_id}/label")
async def relabel_key(
    key_id: str,
    request: KeyLabelRequest,
    keys: KeyManager = Depends(get_key_manager),
):
    if keys.get_key(key_id) is None:
        raise HTTPException(status_code=404, detail="Key not found")
    keys.relabel_key(key_id, request.label)
    return _key_view(keys.get_key(key_id))


# ──────────────────────────────────────────────
# Projects
# ──────────────────────────────────────────────


@router.get("/projects")
async def get_projects():
    """List all projects."""
    return list_projects()


@router.post("/projects", status_code=201)
async def create_new_project(request: ProjectCreateRequest):
    """Create a new project, optionally with its script."""
    try:
        path = create_project(request.id, script=request.script)
    except FileExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "id": path.name,
        "path": str(path.resolve()),
        "message": "Project created successfully.",
    }


@router.get("/projects/{project_id}")
async def get_project_details(project_id: str):
    """Get project.json (status and segments)."""
    _require_project(project_id)
    return load_project_json(project_id)


@router.post("/projects/{project_id}/analyze")
async def analyze(
    project_id: str,
    client: GeminiClient = Depends(get_gemini_client),
):
    """Split the project's script into segments. Replaces existing segments."""
    _require_project(project_id)

    try:
        segments = await analyze_project(project_id, client)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"segments": [s.to_dict() for s in segments]}


@router.post("/projects/{project_id}/segments/{segment_id}/audio")
async def segment_audio(
    project_id: str,
    segment_id: str,
    request: AudioRequest,
    registry: EngineRegistry = Depends(get_registry),
):
    """Generate (or regenerate) one segment's audio."""
    _require_project(project_id)
    provider = _parse_provider(request.provider)

    try:
        segment = await generate_segment_audio(
            project_id, segment_id, registry, provider, voice=request.voice
        )
    except KeyError:
        raise HTTPException(status_code=404, detail="Segment not found")

    return segment.to_dict()


@router.post("/projects/{project_id}/segments/{segment_id}/image")
async def segment_image(
    project_id: str,
    segment_id: str,
    client: GeminiClient = Depends(get_gemini_client),
):
    """Generate (or regenerate) one segment's illustration."""
    _require_project(project_id)

    try:
        segment = await generate_segment_image(project_id, segment_id, client)
    except KeyError:
        raise HTTPException(status_code=404, detail="Segment not found")

    return segment.to_dict()


# ──────────────────────────────────────────────
# Speech
# ──────────────────────────────────────────────


@router.post("/speech")
async def speech(
    request: SpeechRequest,
    registry: EngineRegistry = Depends(get_registry),
):
    """Synthesize text outside any project; returns the audio file."""
    if not request.text.strip():
        raise HTTPException(status_code=400, detail="Text cannot be empty")

    engine = registry.get(_parse_provider(request.provider))
    result = await engine.synthesize(
        EngineSpeechRequest(text=request.text, voice=request.voice)
    )
    logger.info("Speech via %s: %d bytes", engine.name, len(result.audio))
    return Response(content=result.audio, media_type=result.mime_type)


@router.get("/voices")
async def voices(
    provider: str = Provider.GEMINI.value,
    registry: EngineRegistry = Depends(get_registry),
):
    """Voices offered by a provider's speech engine."""
    engine = registry.get(_parse_provider(provider))
    return await engine.list_voices()
