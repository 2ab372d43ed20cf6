"""Shared test fixtures for ScriptGenie."""

import json
from pathlib import Path

import pytest

from scriptgenie.keys.manager import KeyManager
from scriptgenie.keys.storage import InMemoryStore


@pytest.fixture(autouse=True)
def isolate_projects(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Redirect PROJECTS_ROOT to a temp directory for every test.

    Returns the temporary projects root.
    """
    test_root = tmp_path / "PROJECTS"
    test_root.mkdir()

    import scriptgenie.config as cfg
    monkeypatch.setattr(cfg, "PROJECTS_ROOT", test_root)

    # project.py imports it at module level
    import scriptgenie.project as proj_mod
    monkeypatch.setattr(proj_mod, "PROJECTS_ROOT", test_root)

    return test_root


@pytest.fixture(autouse=True)
def isolate_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the durable key store at a temp directory."""
    home = tmp_path / "home"

    monkeypatch.setenv("SCRIPTGENIE_HOME", str(home))

    import scriptgenie.keys.storage as storage_mod
    monkeypatch.setattr(storage_mod, "SCRIPTGENIE_HOME", home)

    import scriptgenie.server.routes as routes_mod
    monkeypatch.setattr(routes_mod, "_key_manager", None)

    return home


@pytest.fixture
def key_manager() -> KeyManager:
    """Empty KeyManager over an in-memory store."""
    return KeyManager(InMemoryStore())


@pytest.fixture
def sample_project(isolate_projects: Path) -> str:
    """Create a project holding a short script and return its ID."""
    from scriptgenie.project import create_project

    project_id = "TEST_PROJECT"
    create_project(
        project_id,
        script="The river rose at dawn.\nBy noon the village had moved uphill.",
    )
    return project_id


@pytest.fixture
def segmented_project(sample_project: str, isolate_projects: Path) -> str:
    """Sample project with three analyzed segments and no assets."""
    pj_path = isolate_projects / sample_project / "project.json"
    pj = json.loads(pj_path.read_text(encoding="utf-8"))
    pj["status"] = "COMPLETE"
    pj["segments"] = [
        {
            "id": f"seg-1-{i}",
            "text": text,
            "image_prompt": prompt,
            "audio_file": None,
            "audio_provider": None,
            "image_file": None,
        }
        for i, (text, prompt) in enumerate(
            [
                ("The river rose at dawn.", "A swollen river under a pink sky"),
                ("Boats drifted past the church.", "Rowboats beside a stone church"),
                ("By noon the village had moved uphill.", "Villagers climbing a hill"),
            ]
        )
    ]
    pj_path.write_text(json.dumps(pj, indent=2), encoding="utf-8")
    return sample_project
