"""
ScriptGenie CLI — Click command groups.

Key management: keys list/add/remove/toggle/label.
Projects:       new, list, status, import.
Generation:     analyze, speak, images.
Output:         export, serve.
"""

import asyncio
import logging
import sys
from pathlib import Path

import click

from scriptgenie import __version__
from scriptgenie.config import API_PORT, KEYS_DIR_NAME, SCRIPTGENIE_HOME
from scriptgenie.keys.errors import AllAttemptsFailed, KeyManagerError, NoKeysAvailable
from scriptgenie.keys.manager import KeyManager
from scriptgenie.keys.models import Provider
from scriptgenie.keys.storage import JsonFileStore
from scriptgenie.utils.security import mask_key

PROVIDER_CHOICE = click.Choice([p.value for p in Provider])


# ──────────────────────────────────────────────
# Async helper
# ──────────────────────────────────────────────


def _run_async(coro):
    """Run an async coroutine from synchronous Click context."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        import concurrent.futures
        with concurrent.futures.ThreadPoolExecutor() as pool:
            return pool.submit(asyncio.run, coro).result()
    else:
        return asyncio.run(coro)


# ──────────────────────────────────────────────
# Main group
# ──────────────────────────────────────────────


@click.group()
@click.version_option(__version__, prog_name="scriptgenie")
@click.option(
    "--home",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="SCRIPTGENIE_HOME",
    default=None,
    help="Directory holding the API key store (default: ~/.scriptgenie).",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, home: Path | None, verbose: bool) -> None:
    """🎬 ScriptGenie: script to narrated, illustrated segments."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["home"] = home or SCRIPTGENIE_HOME


def _key_manager() -> KeyManager:
    """KeyManager over the durable store for this invocation."""
    ctx = click.get_current_context()
    home = ctx.find_root().obj["home"]
    return KeyManager(JsonFileStore(Path(home) / KEYS_DIR_NAME))


# ──────────────────────────────────────────────
# Key management
# ──────────────────────────────────────────────


@main.group()
def keys() -> None:
    """Manage provider API keys."""
    pass


@keys.command("list")
@click.option("--provider", type=PROVIDER_CHOICE, default=None, help="Only this provider.")
def keys_list(provider: str | None) -> None:
    """List stored keys (key material is masked)."""
    manager = _key_manager()
    providers = [Provider(provider)] if provider else list(Provider)

    for prov in providers:
        entries = manager.get_keys(prov)
        enabled = sum(1 for k in entries if k.is_enabled)
        click.secho(f"{prov.value} ({enabled}/{len(entries)} enabled)", fg="cyan", bold=True)

        if not entries:
            click.echo("  (no keys)")
            continue

        for k in entries:
            icon = click.style("●", fg="green") if k.is_enabled else click.style("○", fg="white")
            click.echo(f"  {icon} {k.id:<32} {k.display_label:<24} {mask_key(k.key)}")


@keys.command("add")
@click.argument("provider", type=PROVIDER_CHOICE)
@click.argument("key")
@click.option("--label", default=None, help="Human-readable label.")
def keys_add(provider: str, key: str, label: str | None) -> None:
    """Add an API key for a provider (enabled by default)."""
    manager = _key_manager()
    try:
        added = manager.add_key(key.strip(), provider, label)
    except KeyManagerError as e:
        click.secho(f"✗ {e}", fg="red")
        sys.exit(1)

    click.secho(f"✓ Added {provider} key: {added.display_label}", fg="green")
    click.echo(f"  ID: {added.id}")


@keys.command("remove")
@click.argument("key_id")
def keys_remove(key_id: str) -> None:
    """Remove a key by ID."""
    manager = _key_manager()
    if manager.get_key(key_id) is None:
        click.secho(f"⚠ Key not found: {key_id}", fg="yellow")
        return
    manager.remove_key(key_id)
    click.echo(f"Removed: {key_id}")


@keys.command("toggle")
@click.argument("key_id")
def keys_toggle(key_id: str) -> None:
    """Enable or disable a key."""
    manager = _key_manager()
    manager.toggle_key_status(key_id)
    updated = manager.get_key(key_id)
    if updated is None:
        click.secho(f"⚠ Key not found: {key_id}", fg="yellow")
        return
    state = "enabled" if updated.is_enabled else "disabled"
    click.echo(f"{updated.display_label}: {state}")


@keys.command("label")
@click.argument("key_id")
@click.argument("label")
def keys_label(key_id: str, label: str) -> None:
    """Rename a key."""
    manager = _key_manager()
    manager.relabel_key(key_id, label)
    updated = manager.get_key(key_id)
    if updated is None:
        click.secho(f"⚠ Key not found: {key_id}", fg="yellow")
        return
    click.echo(f"{key_id}: {updated.display_label}")


# ──────────────────────────────────────────────
# Project management
# ──────────────────────────────────────────────


@main.command()
@click.argument("name")
@click.option("--script", "script_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help="Import a .txt or .srt script.")
def new(name: str, script_file: Path | None) -> None:
    """Create a new project."""
    from scriptgenie.project import create_project
    from scriptgenie.ingest import ingest_script

    try:
        project_path = create_project(name)
        if script_file:
            ingest_script(project_path.name, script_file)
    except (FileExistsError, FileNotFoundError, ValueError) as e:
        click.secho(f"✗ {e}", fg="red")
        sys.exit(1)

    click.secho(f"✓ Created project: {project_path.name}", fg="green")
    click.echo(f"  Path: {project_path.resolve()}")
    click.echo()
    click.echo("Next steps:")
    steps = [] if script_file else [f"scriptgenie import {project_path.name} SCRIPT.txt"]
    steps.append(f"scriptgenie analyze {project_path.name}")
    for i, step in enumerate(steps, start=1):
        click.echo(f"  {i}. {step}")


@main.command("import")
@click.argument("project_id")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def import_script(project_id: str, source: Path) -> None:
    """Import a .txt or .srt script into a project."""
    from scriptgenie.ingest import ingest_script

    _project_guard(project_id)

    try:
        result = ingest_script(project_id, source)
    except (FileNotFoundError, ValueError) as e:
        click.secho(f"✗ {e}", fg="red")
        sys.exit(1)

    click.secho(
        f"✓ Imported {result['source']}: {result['lines']} lines, "
        f"{result['characters']} chars",
        fg="green",
    )


@main.command("list")
def list_projects() -> None:
    """List all projects."""
    from scriptgenie.project import list_projects as _list

    projects = _list()

    if not projects:
        click.echo("No projects found.")
        click.echo("  Create one: scriptgenie new MY_SCRIPT")
        return

    click.echo(f"{'ID':<30} {'Created':<22} {'Status':<12} {'Segments':<10} {'Audio':<7} {'Images'}")
    click.echo("─" * 92)

    for p in projects:
        click.echo(
            f"{p['id']:<30} "
            f"{p['created'][:19]:<22} "
            f"{p['status']:<12} "
            f"{p['segments']:<10} "
            f"{p['audio']:<7} "
            f"{p['images']}"
        )


@main.command()
@click.argument("project_id")
def status(project_id: str) -> None:
    """Show project status and segments."""
    from scriptgenie.project import load_project_json, load_segments

    _project_guard(project_id)

    pj = load_project_json(project_id)
    segments = load_segments(project_id)

    click.secho(f"Project: {pj['id']}", fg="cyan", bold=True)
    click.echo(f"  Created:  {pj.get('created', 'unknown')}")
    click.echo(f"  Status:   {pj.get('status', 'IDLE')}")
    if pj.get("error"):
        click.secho(f"  Error:    {pj['error']}", fg="red")
    click.echo(f"  Segments: {len(segments)}")
    click.echo()

    for i, seg in enumerate(segments, start=1):
        audio = click.style("♪", fg="green") if seg.has_audio else click.style("·", fg="white")
        image = click.style("▣", fg="green") if seg.has_image else click.style("·", fg="white")
        preview = seg.original_text.replace("\n", " ")
        if len(preview) > 60:
            preview = preview[:57] + "..."
        click.echo(f"  {i:>3}. {audio} {image} {seg.id:<24} {preview}")


# ──────────────────────────────────────────────
# Generation
# ──────────────────────────────────────────────


@main.command()
@click.argument("project_id")
def analyze(project_id: str) -> None:
    """Split the script into segments with image prompts."""
    from scriptgenie.engines.gemini import GeminiClient
    from scriptgenie.generate import analyze_project

    _project_guard(project_id)

    async def _analyze():
        client = GeminiClient(_key_manager())
        try:
            return await analyze_project(project_id, client, progress_callback=click.echo)
        finally:
            await client.aclose()

    try:
        segments = _run_async(_analyze())
    except Exception as e:
        _fail("Analysis failed", e)

    click.secho(f"✓ {len(segments)} segments ready.", fg="green", bold=True)
    click.echo(f"  Next: scriptgenie speak {project_id}")


@main.command()
@click.argument("project_id")
@click.option("--segment", "segment_id", default=None, help="Only this segment (regenerates).")
@click.option("--provider", type=PROVIDER_CHOICE, default=Provider.GEMINI.value,
              show_default=True, help="Speech provider.")
@click.option("--delay", type=float, default=None, help="Seconds between batch requests.")
def speak(project_id: str, segment_id: str | None, provider: str, delay: float | None) -> None:
    """Generate speech for segments without audio."""
    from scriptgenie.config import DEFAULT_AUDIO_BATCH_DELAY_SEC
    from scriptgenie.engines.registry import build_registry
    from scriptgenie.generate import generate_all_audio, generate_segment_audio

    _project_guard(project_id)

    async def _speak():
        registry = build_registry(_key_manager())
        try:
            if segment_id:
                await generate_segment_audio(project_id, segment_id, registry, provider)
                return None
            return await generate_all_audio(
                project_id,
                registry,
                provider=provider,
                delay_sec=DEFAULT_AUDIO_BATCH_DELAY_SEC if delay is None else delay,
                progress_callback=click.echo,
            )
        finally:
            await registry.aclose()

    try:
        result = _run_async(_speak())
    except Exception as e:
        _fail("Audio generation failed", e)

    _report_batch(result, "audio")


@main.command()
@click.argument("project_id")
@click.option("--segment", "segment_id", default=None, help="Only this segment (regenerates).")
@click.option("--delay", type=float, default=None, help="Seconds between batch requests.")
def images(project_id: str, segment_id: str | None, delay: float | None) -> None:
    """Generate illustrations for segments without an image."""
    from scriptgenie.config import DEFAULT_IMAGE_BATCH_DELAY_SEC
    from scriptgenie.engines.gemini import GeminiClient
    from scriptgenie.generate import generate_all_images, generate_segment_image

    _project_guard(project_id)

    async def _images():
        client = GeminiClient(_key_manager())
        try:
            if segment_id:
                await generate_segment_image(project_id, segment_id, client)
                return None
            return await generate_all_images(
                project_id,
                client,
                delay_sec=DEFAULT_IMAGE_BATCH_DELAY_SEC if delay is None else delay,
                progress_callback=click.echo,
            )
        finally:
            await client.aclose()

    try:
        result = _run_async(_images())
    except Exception as e:
        _fail("Image generation failed", e)

    _report_batch(result, "image")


# ──────────────────────────────────────────────
# Export
# ──────────────────────────────────────────────


@main.command("export")
@click.argument("project_id")
@click.option("--format", "fmt", type=click.Choice(["sheet", "json", "images", "audio", "all"]),
              default="all", show_default=True, help="What to export.")
def export(project_id: str, fmt: str) -> None:
    """Export segments (CSV/JSON) and asset archives."""
    from scriptgenie.export.archive import export_audio_zip, export_images_zip
    from scriptgenie.export.metadata import generate_manifest
    from scriptgenie.export.sheet import export_json, export_sheet
    from scriptgenie.project import get_project_path, load_segments

    _project_guard(project_id)

    exporters = {
        "sheet": export_sheet,
        "json": export_json,
        "images": export_images_zip,
        "audio": export_audio_zip,
    }
    selected = list(exporters) if fmt == "all" else [fmt]

    written = 0
    for name in selected:
        try:
            path = exporters[name](project_id)
        except ValueError as e:
            level = "yellow" if fmt == "all" else "red"
            click.secho(f"  ⚠ {name}: {e}", fg=level)
            continue
        click.echo(f"  ✓ {name}: {path}")
        written += 1

    if not written:
        click.secho("✗ Nothing exported.", fg="red")
        sys.exit(1)

    export_dir = get_project_path(project_id) / "export"
    manifest = generate_manifest(export_dir, project_id, len(load_segments(project_id)))
    click.secho(f"✓ Export complete. Manifest: {manifest}", fg="green")


# ──────────────────────────────────────────────
# Server
# ──────────────────────────────────────────────


@main.command()
@click.option("--port", type=int, default=API_PORT, show_default=True)
@click.option("--host", default="127.0.0.1", show_default=True)
def serve(port: int, host: str) -> None:
    """Start the ScriptGenie API server."""
    import uvicorn

    click.secho(f"🚀 Starting API server on http://{host}:{port}", fg="green", bold=True)
    click.echo(f"   Docs: http://{host}:{port}/docs")

    uvicorn.run("scriptgenie.server.app:app", host=host, port=port)


# ──────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────


def _project_guard(project_id: str) -> None:
    """Exit unless the project exists."""
    from scriptgenie.project import project_exists

    if not project_exists(project_id):
        click.secho(f"✗ Project not found: {project_id}", fg="red")
        click.echo("  Run: scriptgenie list")
        sys.exit(1)


def _fail(prefix: str, error: Exception) -> None:
    """Print a generation error and exit; no-key errors get a hint."""
    click.secho(f"✗ {prefix}: {error}", fg="red")
    if isinstance(error, NoKeysAvailable):
        click.echo(f"  Add one: scriptgenie keys add {error.provider} YOUR_API_KEY")
    elif isinstance(error, AllAttemptsFailed):
        click.echo("  Every enabled key failed. Check quotas or try again later.")
    sys.exit(1)


def _report_batch(result: dict | None, label: str) -> None:
    if result is None:
        click.secho(f"✓ Segment {label} generated.", fg="green")
        return

    click.echo()
    if result["failed"] == 0:
        click.secho(f"✓ Generated {result['generated']}/{result['total']} {label} files.",
                    fg="green", bold=True)
        return

    click.secho(
        f"◐ Generated {result['generated']}/{result['total']} {label} files, "
        f"{result['failed']} failed.",
        fg="yellow",
    )
    for failure in result["failures"]:
        click.echo(f"  ✗ {failure['segment_id']}: {failure['error']}")
    sys.exit(1)
