"""Clean-plate capture of the stage."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from .errors import CaptureNotReady
from .stage import Renderer, Stage
from .state import SceneState

logger = logging.getLogger(__name__)

CAPTURE_QUALITY = 0.9


@contextmanager
def helpers_hidden(stage: Stage, state: SceneState) -> Iterator[Stage]:
    """Hide every non-diegetic helper for the duration of the block.

    On exit the grid and drag gizmo get their recorded flags back, while the
    light gizmos follow the lights' *current* enabled flags, since the scene
    may have changed in the meantime. Restoring happens on every exit path.
    """
    grid_visible = stage.grid.visible
    transform = stage.transform
    transform_enabled = transform.enabled
    transform_visible = transform.visible
    transform_object = transform.object

    stage.grid.visible = False
    stage.key_gizmo.visible = False
    stage.fill_gizmo.visible = False
    transform.enabled = False
    transform.visible = False
    try:
        yield stage
    finally:
        params = state.get()
        stage.grid.visible = grid_visible
        stage.key_gizmo.visible = params.key_light.enabled
        stage.fill_gizmo.visible = params.fill_light.enabled
        transform.enabled = transform_enabled
        transform.visible = transform_visible
        if transform_object is not None:
            transform.attach(transform_object)
        else:
            transform.detach()


class CapturePipeline:
    """Takes clean plates: subject and lights only, no gizmos or grid."""

    def __init__(self, stage: Stage, renderer: Renderer, state: SceneState) -> None:
        self.stage = stage
        self.renderer = renderer
        self.state = state

    def capture(self, quality: float = CAPTURE_QUALITY) -> bytes:
        """Render and read back one frame synchronously, as JPEG bytes.

        Raises:
            CaptureNotReady: If the renderer has nothing to render into yet.

        """
        if not self.renderer.ready:
            raise CaptureNotReady
        with helpers_hidden(self.stage, self.state):
            self.renderer.render(self.stage)
            image = self.renderer.read_image(quality)
        logger.debug("Captured clean plate (%d bytes)", len(image))
        return image
