"""Tests for FastAPI server routes using TestClient."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from scriptgenie.engines.base import SpeechResult
from scriptgenie.engines.registry import EngineRegistry
from scriptgenie.keys import AllAttemptsFailed, KeyManager, Provider
from scriptgenie.project import load_project_json
from scriptgenie.segments import AnalysisItem
from scriptgenie.server.app import app
from scriptgenie.server.routes import get_gemini_client, get_key_manager, get_registry


@pytest.fixture
def client(key_manager: KeyManager):
    app.dependency_overrides[get_key_manager] = lambda: key_manager
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _fake_registry(keys: KeyManager, engine: MagicMock) -> EngineRegistry:
    registry = EngineRegistry(keys)
    registry.register("gemini", lambda k: engine)
    registry.register("elevenlabs", lambda k: engine)
    return registry


@pytest.fixture
def speech_engine() -> MagicMock:
    engine = MagicMock()
    engine.name = "gemini"
    engine.synthesize = AsyncMock(
        return_value=SpeechResult(audio=b"RIFFdata", mime_type="audio/wav", extension="wav")
    )
    return engine


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestKeyRoutes:
    """Tests for /api/keys."""

    def test_add_and_list_masked(self, client: TestClient) -> None:
        response = client.post(
            "/api/keys",
            json={"provider": "gemini", "key": "AIzaSyExampleKey0001", "label": "Work"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["maskedKey"] == "AIza…0001"
        assert body["isEnabled"] is True
        assert "key" not in body

        listed = client.get("/api/keys").json()
        assert [k["label"] for k in listed] == ["Work"]
        assert "AIzaSyExampleKey0001" not in client.get("/api/keys").text

    def test_list_by_provider(self, client: TestClient, key_manager: KeyManager) -> None:
        key_manager.add_key("g-key", Provider.GEMINI)
        key_manager.add_key("e-key", Provider.ELEVENLABS)

        listed = client.get("/api/keys", params={"provider": "elevenlabs"}).json()
        assert [k["provider"] for k in listed] == ["elevenlabs"]

    def test_unknown_provider(self, client: TestClient) -> None:
        response = client.post("/api/keys", json={"provider": "openai", "key": "x"})
        assert response.status_code == 400

    def test_empty_key(self, client: TestClient) -> None:
        response = client.post("/api/keys", json={"provider": "gemini", "key": "  "})
        assert response.status_code == 400
        assert response.json()["detail"] == "API Key cannot be empty"

    def test_duplicate_key(self, client: TestClient) -> None:
        payload = {"provider": "gemini", "key": "AIzaSyExampleKey0001"}
        client.post("/api/keys", json=payload)
        response = client.post("/api/keys", json=payload)
        assert response.status_code == 409
        assert response.json()["code"] == "duplicate_key"

    def test_toggle_label_delete(self, client: TestClient, key_manager: KeyManager) -> None:
        added = key_manager.add_key("g-key-material", Provider.GEMINI)

        toggled = client.post(f"/api/keys/{added.id}/toggle").json()
        assert toggled["isEnabled"] is False

        relabeled = client.put(f"/api/keys/{added.id}/label", json={"label": "Spare"}).json()
        assert relabeled["label"] == "Spare"

        assert client.delete(f"/api/keys/{added.id}").status_code == 200
        assert key_manager.get_key(added.id) is None

    def test_unknown_key_404(self, client: TestClient) -> None:
        assert client.delete("/api/keys/key-0-missing").status_code == 404
        assert client.post("/api/keys/key-0-missing/toggle").status_code == 404
        assert client.put("/api/keys/key-0-missing/label", json={"label": "x"}).status_code == 404


class TestProjectRoutes:
    """Tests for /api/projects."""

    def test_create_and_get(self, client: TestClient) -> None:
        response = client.post("/api/projects", json={"id": "demo", "script": "Hi."})
        assert response.status_code == 201
        assert response.json()["id"] == "DEMO"

        details = client.get("/api/projects/DEMO").json()
        assert details["status"] == "IDLE"
        assert [p["id"] for p in client.get("/api/projects").json()] == ["DEMO"]

    def test_create_duplicate(self, client: TestClient, sample_project: str) -> None:
        response = client.post("/api/projects", json={"id": sample_project})
        assert response.status_code == 409

    def test_create_invalid(self, client: TestClient) -> None:
        assert client.post("/api/projects", json={"id": "!!!"}).status_code == 400

    def test_get_missing(self, client: TestClient) -> None:
        assert client.get("/api/projects/NOPE").status_code == 404

    def test_analyze(self, client: TestClient, sample_project: str) -> None:
        gemini = MagicMock()
        gemini.analyze_script = AsyncMock(return_value=[AnalysisItem("A.", "a")])
        app.dependency_overrides[get_gemini_client] = lambda: gemini

        response = client.post(f"/api/projects/{sample_project}/analyze")

        assert response.status_code == 200
        assert response.json()["segments"][0]["text"] == "A."

    def test_analyze_without_keys(self, client: TestClient, sample_project: str) -> None:
        response = client.post(f"/api/projects/{sample_project}/analyze")

        assert response.status_code == 428
        assert response.json()["code"] == "no_keys"
        assert load_project_json(sample_project)["status"] == "ERROR"


class TestSegmentRoutes:
    """Tests for per-segment generation."""

    def test_segment_audio(
        self,
        client: TestClient,
        segmented_project: str,
        key_manager: KeyManager,
        speech_engine: MagicMock,
    ) -> None:
        app.dependency_overrides[get_registry] = lambda: _fake_registry(key_manager, speech_engine)

        response = client.post(
            f"/api/projects/{segmented_project}/segments/seg-1-0/audio",
            json={"provider": "gemini"},
        )

        assert response.status_code == 200
        assert response.json()["audio_file"] == "segment_001.wav"

    def test_segment_not_found(
        self,
        client: TestClient,
        segmented_project: str,
        key_manager: KeyManager,
        speech_engine: MagicMock,
    ) -> None:
        app.dependency_overrides[get_registry] = lambda: _fake_registry(key_manager, speech_engine)

        response = client.post(f"/api/projects/{segmented_project}/segments/seg-x/audio", json={})
        assert response.status_code == 404

    def test_segment_image_all_keys_failed(
        self, client: TestClient, segmented_project: str
    ) -> None:
        gemini = MagicMock()
        gemini.generate_image = AsyncMock(
            side_effect=AllAttemptsFailed("gemini", [("Key a...", RuntimeError("quota"))])
        )
        app.dependency_overrides[get_gemini_client] = lambda: gemini

        response = client.post(f"/api/projects/{segmented_project}/segments/seg-1-0/image")

        assert response.status_code == 502
        body = response.json()
        assert body["code"] == "all_keys_failed"
        assert body["attempts"] == 1


class TestSpeechRoute:
    """Tests for /api/speech."""

    def test_returns_audio(
        self, client: TestClient, key_manager: KeyManager, speech_engine: MagicMock
    ) -> None:
        app.dependency_overrides[get_registry] = lambda: _fake_registry(key_manager, speech_engine)

        response = client.post("/api/speech", json={"text": "Hello", "voice": "Puck"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "audio/wav"
        assert response.content == b"RIFFdata"
        request = speech_engine.synthesize.await_args.args[0]
        assert request.voice == "Puck"

    def test_empty_text(self, client: TestClient) -> None:
        assert client.post("/api/speech", json={"text": " "}).status_code == 400

    def test_no_keys(self, client: TestClient) -> None:
        response = client.post("/api/speech", json={"text": "Hello", "provider": "elevenlabs"})
        assert response.status_code == 428
        assert "No enabled API keys" in response.json()["detail"]
