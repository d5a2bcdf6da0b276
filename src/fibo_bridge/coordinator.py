"""Coordinates clean-plate capture and generation requests."""

import asyncio
import logging
import time
from collections.abc import Callable
from enum import Enum

from .capture import CapturePipeline
from .errors import EmptyResult, GenerationError, GenerationInProgress, MissingCredential
from .models import GeneratedShot
from .service import GenerationEngine
from .state import SceneState

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    REQUESTING = "requesting"
    FAILED = "failed"


class GenerationCoordinator:
    """Runs at most one generation at a time.

    ``IDLE -> CAPTURING -> REQUESTING -> IDLE``, or through ``FAILED`` back to
    ``IDLE``. A request made while not idle is rejected, never queued. The
    scene is frozen when capture starts, so edits made while the request is
    in flight cannot reach it.
    """

    def __init__(
        self,
        state: SceneState,
        capture: CapturePipeline,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.state = state
        self.capture = capture
        self.clock = clock
        self.phase = Phase.IDLE
        self._last_id = 0

    @property
    def busy(self) -> bool:
        return self.phase is not Phase.IDLE

    async def generate(self, engine: GenerationEngine) -> GeneratedShot:
        """Capture the stage, call ``engine`` and add the result to the gallery.

        Raises:
            GenerationInProgress: If another generation is outstanding.
            MissingCredential: If no API key is set; nothing is captured.
            CaptureNotReady: If the renderer has no frame; no request is made.
            TransportError: If the engine call fails.
            EmptyResult: If the engine returns no image.

        """
        # Check-and-set with no await in between.
        if self.phase is not Phase.IDLE:
            raise GenerationInProgress
        api_key = self.state.api_key
        if not api_key:
            raise MissingCredential(engine.label)
        self.phase = Phase.CAPTURING

        try:
            params = self.state.get().model_copy(deep=True)
            plate = self.capture.capture()

            self.phase = Phase.REQUESTING
            logger.info("Requesting %s generation", engine.label)
            image_url = await asyncio.to_thread(engine.generate, params, api_key, plate)
            if not image_url:
                raise EmptyResult(engine.label)

            shot = GeneratedShot(
                id=self._next_id(),
                timestamp=int(self.clock() * 1000),
                image_url=image_url,
                params=params,
                engine=engine.engine,
            )
            self.state.add_shot(shot)
            self.state.view_shot(shot.id)
            logger.info("Generated shot %s", shot.id)
            return shot
        except GenerationError as e:
            self.phase = Phase.FAILED
            logger.error("Generation failed: %s", e)
            raise
        finally:
            self.phase = Phase.IDLE

    def _next_id(self) -> str:
        """Time-derived id, bumped so ids stay unique and increasing."""
        candidate = int(self.clock() * 1000)
        self._last_id = max(candidate, self._last_id + 1)
        return str(self._last_id)
