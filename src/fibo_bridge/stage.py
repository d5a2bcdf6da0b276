"""Headless scene graph of the virtual stage.

The stage mirrors what the browser renderer holds: the subject, two lights
with their gizmo meshes, the floor grid and the drag gizmo. Only
``SceneState`` (through :meth:`Stage.sync`) and the capture pipeline write to
it.
"""

from dataclasses import dataclass, field
from typing import Protocol

from .assets import AssetLoader, Box, load_subject
from .color import RGB, WHITE, hex_to_rgb
from .models import ControlMode, SceneParams, Session, SubjectModel, Vector3
from .rig import CameraState, EnvironmentState, LightState, RenderState
from .state import DEFAULT_AZIMUTH, SceneState


@dataclass
class Node:
    """A helper mesh on the stage, such as a light gizmo."""

    name: str
    position: Vector3 = field(default_factory=Vector3)
    visible: bool = True
    color: RGB = WHITE
    radius: float = 0.15


class TransformControl:
    """The translate gizmo used to drag a light around."""

    def __init__(self) -> None:
        self.enabled = False
        self.visible = False
        self.object: Node | None = None

    def attach(self, node: Node) -> None:
        self.object = node

    def detach(self) -> None:
        self.object = None


class Stage:
    """Renderer-side state of the studio."""

    def __init__(self) -> None:
        self.grid = Node("grid", radius=0.0)
        self.key_gizmo = Node("key_light", radius=0.15)
        self.fill_gizmo = Node("fill_light", radius=0.1, color=hex_to_rgb("#ffaa00"))
        self.transform = TransformControl()
        self.subject: list[Box] = []
        self.orbit_azimuth = DEFAULT_AZIMUTH

        self.camera: CameraState | None = None
        self.key_light: LightState | None = None
        self.fill_light: LightState | None = None
        self.environment: EnvironmentState | None = None

    def apply(self, render_state: RenderState, mode: ControlMode) -> None:
        """Copy derived render state onto the scene graph."""
        self.camera = render_state.camera
        self.environment = render_state.environment
        self.key_light = render_state.key_light
        self.fill_light = render_state.fill_light

        for gizmo, light in (
            (self.key_gizmo, render_state.key_light),
            (self.fill_gizmo, render_state.fill_light),
        ):
            gizmo.position = light.position
            gizmo.color = light.color
            gizmo.visible = light.visible

        if mode is ControlMode.DRAG_KEY:
            self._attach_transform(self.key_gizmo)
        elif mode is ControlMode.DRAG_FILL:
            self._attach_transform(self.fill_gizmo)
        else:
            self.transform.enabled = False
            self.transform.visible = False
            self.transform.detach()

    def _attach_transform(self, node: Node) -> None:
        self.transform.enabled = True
        self.transform.visible = True
        self.transform.attach(node)

    def sync(self, state: SceneState) -> None:
        """Subscriber hook for ``SceneState``."""
        self.apply(state.render_state, state.mode)

    def set_subject(self, boxes: list[Box]) -> None:
        self.subject = list(boxes)

    def orbit(self, azimuth: float) -> None:
        """Record the free-orbit control's horizontal angle."""
        self.orbit_azimuth = azimuth


class Renderer(Protocol):
    """What the capture pipeline needs from a renderer."""

    @property
    def ready(self) -> bool: ...

    def render(self, stage: Stage) -> None: ...

    def read_image(self, quality: float) -> bytes: ...


def open_stage(
    scene: SceneParams | None = None,
    loader: AssetLoader | None = None,
) -> tuple[Stage, SceneState]:
    """Build a stage wired to a fresh ``SceneState``.

    The state reads the orbit azimuth from the stage, reloads the subject
    whenever the model changes and pushes every change onto the stage. A
    ``Session`` also restores mode, gallery and the other session fields.
    """
    stage = Stage()

    def reload_subject(model: SubjectModel) -> None:
        stage.set_subject(load_subject(model, loader))

    state = SceneState(
        azimuth_source=lambda: stage.orbit_azimuth,
        on_model_change=reload_subject,
    )
    state.subscribe(stage.sync)
    if isinstance(scene, Session):
        state.load_session(scene)
    else:
        state.replace_all(scene or state.get())
    return stage, state