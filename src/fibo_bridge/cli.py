"""CLI Application for Fibo Bridge."""

import asyncio
import base64
import json
import logging
import os
from pathlib import Path

import requests
import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .assets import GltfBoundsLoader, OfflineLoader
from .capture import CapturePipeline
from .color import rgb_to_hex
from .coordinator import GenerationCoordinator
from .errors import GenerationError
from .models import LIGHTING_PRESETS, Engine, GeneratedShot, GenerationConfig
from .persistence import load_session, save_session, serialize_params, shot_filename
from .preview import PreviewRenderer
from .rig import LightState
from .service import create_engine
from .stage import Stage, open_stage
from .state import SceneState

# Setup Typer and Console
app = typer.Typer(help="Fibo Bridge CLI - Virtual Cinematographer")
console = Console()

API_KEY_ENV = {
    Engine.GEMINI: "GEMINI_API_KEY",
    Engine.BRIA: "BRIA_API_KEY",
    Engine.FAL: "FAL_KEY",
}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    """Stage a subject, camera and lights, then generate a photoreal still."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _fail(message: str) -> typer.Exit:
    console.print(f"[bold red]Error:[/bold red] {message}")
    return typer.Exit(code=1)


def _get_api_key(engine: Engine, api_key: str | None = None) -> str:
    """Get the credential for an engine."""
    load_dotenv()
    if not api_key:
        api_key = os.getenv(API_KEY_ENV[engine])
    if not api_key:
        raise _fail(f"{API_KEY_ENV[engine]} not found in env or arguments.")
    return api_key


def _open_scene(scene_path: Path, fetch_models: bool) -> tuple[Stage, SceneState]:
    if not scene_path.exists():
        raise _fail(f"File {scene_path} not found.")
    try:
        session = load_session(scene_path)
    except (ValueError, ValidationError) as e:
        raise _fail(f"Could not read {scene_path}: {e}") from e
    loader = GltfBoundsLoader() if fetch_models else OfflineLoader()
    return open_stage(session, loader=loader)


def _light_row(name: str, light: LightState) -> list[str]:
    p = light.position
    return [
        name,
        f"({p.x:.2f}, {p.y:.2f}, {p.z:.2f})",
        rgb_to_hex(light.color),
        f"{light.intensity:.1f}",
        f"{light.target.y:.2f}",
        "yes" if light.visible else "no",
    ]


def _save_image(shot: GeneratedShot, output_dir: Path) -> Path:
    """Write a shot's image to disk, decoding data URLs or downloading."""
    output_dir.mkdir(parents=True, exist_ok=True)
    if shot.image_url.startswith("data:"):
        header, encoded = shot.image_url.split(",", 1)
        suffix = "." + header.split(";")[0].split("/")[-1]
        data = base64.b64decode(encoded)
    else:
        response = requests.get(shot.image_url, timeout=60)
        response.raise_for_status()
        suffix = Path(shot.image_url.split("?")[0]).suffix or ".png"
        data = response.content
    image_path = output_dir / shot_filename(shot, suffix)
    with image_path.open("wb") as f:
        f.write(data)
    return image_path


def _review_panel(shot: GeneratedShot) -> Panel:
    params = shot.params
    setup = {
        "camera": params.camera_angle.value,
        "shot": params.shot_size.value,
        "lights": {
            "key": params.key_light.model_dump(mode="json", by_alias=True),
            "fill": params.fill_light.model_dump(mode="json", by_alias=True),
        },
    }
    return Panel(
        f"[bold]Subject:[/bold] {params.subject_description}\n"
        f"[bold]Engine:[/bold] {shot.engine.value}\n"
        f"[bold]Lens:[/bold] {params.lens_type.value}\n"
        f"[bold]Style:[/bold] {params.visual_style.value}\n"
        f"[bold]Key Light:[/bold] {params.key_light.color_temp}K\n\n"
        f"{json.dumps(setup, indent=2)}",
        title=f"Shot Review {shot.id}",
        border_style="green",
    )


@app.command()
def new(
    output: Path = typer.Argument(..., help="Where to write the scene JSON"),
    preset: str | None = typer.Option(
        None,
        help=f"Lighting preset: {', '.join(LIGHTING_PRESETS)}",
    ),
) -> None:
    """Write a default scene document."""
    state = SceneState()
    if preset is not None:
        if preset not in LIGHTING_PRESETS:
            raise _fail(f"Unknown preset {preset}.")
        state.apply_preset(preset)
    save_session(output, state)
    console.print(f"Scene saved to: [underline]{output}[/underline]")


@app.command()
def frame(
    scene: Path = typer.Argument(..., help="Path to the scene JSON file"),
    azimuth: float | None = typer.Option(None, help="Orbit azimuth in radians"),
    fetch_models: bool = typer.Option(False, help="Download subject models"),
) -> None:
    """Show the camera, lights and environment derived from a scene."""
    stage, state = _open_scene(scene, fetch_models)
    if azimuth is not None:
        stage.orbit(azimuth)
        state.refresh()
    render = state.render_state

    camera = render.camera
    console.print(
        Panel(
            f"[bold]Position:[/bold] ({camera.position.x:.3f}, "
            f"{camera.position.y:.3f}, {camera.position.z:.3f})\n"
            f"[bold]Target:[/bold] (0, {camera.target.y:.2f}, 0)\n"
            f"[bold]FOV:[/bold] {camera.fov:.0f}",
            title="Camera",
            border_style="blue",
        ),
    )

    table = Table(title="Lights")
    for column in ("Light", "Position", "Color", "Intensity", "Aim", "Visible"):
        table.add_column(column)
    table.add_row(*_light_row("Key", render.key_light))
    table.add_row(*_light_row("Fill", render.fill_light))
    console.print(table)

    env = render.environment
    console.print(
        f"[bold]Environment:[/bold] exposure {env.exposure}, "
        f"backdrop {rgb_to_hex(env.background)}, fog {env.fog_density}",
    )


@app.command()
def capture(
    scene: Path = typer.Argument(..., help="Path to the scene JSON file"),
    output: Path = typer.Option(Path("clean_plate.jpg"), help="Output JPEG path"),
    width: int = typer.Option(1280, help="Frame width in pixels"),
    height: int = typer.Option(720, help="Frame height in pixels"),
    fetch_models: bool = typer.Option(True, help="Download subject models"),
) -> None:
    """Render a clean plate of the stage."""
    stage, state = _open_scene(scene, fetch_models)
    pipeline = CapturePipeline(stage, PreviewRenderer(width, height), state)
    try:
        image = pipeline.capture()
    except GenerationError as e:
        raise _fail(str(e)) from e

    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("wb") as f:
        f.write(image)
    console.print(f"Clean plate saved to: [underline]{output}[/underline]")


@app.command()
def generate(
    scene: Path = typer.Argument(..., help="Path to the scene JSON file"),
    engine: str = typer.Option("gemini", help="gemini, bria or fal"),
    api_key: str | None = typer.Option(None, help="API key for the engine"),
    output_dir: Path = typer.Option(
        None,
        help="Directory for the generated image (defaults to scene dir / shots)",
    ),
    model: str | None = typer.Option(None, help="Override the engine model"),
    retries: int = typer.Option(2, help="Number of retries on transport errors"),
    fetch_models: bool = typer.Option(True, help="Download subject models"),
) -> None:
    """Capture the stage and generate a still; the shot joins the gallery."""
    try:
        selected = Engine(engine.upper())
    except ValueError as e:
        raise _fail(f"Unknown engine {engine}.") from e

    key = _get_api_key(selected, api_key)
    stage, state = _open_scene(scene, fetch_models)
    state.api_key = key
    coordinator = GenerationCoordinator(
        state,
        CapturePipeline(stage, PreviewRenderer(), state),
    )
    client = create_engine(selected, GenerationConfig(model=model, retries=retries))

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task(f"Generating with {client.label}...", total=None)
            shot = asyncio.run(coordinator.generate(client))
    except GenerationError as e:
        raise _fail(str(e)) from e

    save_session(scene, state)
    console.print(_review_panel(shot))

    if output_dir is None:
        output_dir = scene.parent / "shots"
    try:
        image_path = _save_image(shot, output_dir)
    except requests.RequestException as e:
        console.print(f"[yellow]Warning: Failed to download image: {e}[/yellow]")
    else:
        console.print(f"Image saved to: [underline]{image_path}[/underline]")


@app.command()
def shot(
    scene: Path = typer.Argument(..., help="Path to the scene JSON file"),
    shot_id: str = typer.Argument(..., help="Id of the gallery shot"),
    output: Path = typer.Option(None, help="Where to write the shot's scene JSON"),
) -> None:
    """Review a gallery shot and export the scene that produced it."""
    if not scene.exists():
        raise _fail(f"File {scene} not found.")
    try:
        session = load_session(scene)
    except (ValueError, ValidationError) as e:
        raise _fail(f"Could not read {scene}: {e}") from e

    state = SceneState()
    state.load_session(session)
    found = state.find_shot(shot_id)
    if found is None:
        raise _fail(f"No shot {shot_id} in {scene}.")

    console.print(_review_panel(found))
    if output is None:
        output = scene.parent / shot_filename(found)
    with output.open("w") as f:
        f.write(serialize_params(found.params))
    console.print(f"Shot scene saved to: [underline]{output}[/underline]")


if __name__ == "__main__":
    app()
