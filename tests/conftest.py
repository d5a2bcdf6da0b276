"""Shared fixtures for the Fibo Bridge tests."""

import pytest

from fibo_bridge.assets import OfflineLoader
from fibo_bridge.models import SceneParams, SubjectModel
from fibo_bridge.stage import open_stage


class FakeRenderer:
    """Records what the stage looked like at each render."""

    def __init__(self, ready: bool = True, image: bytes = b"\xff\xd8plate") -> None:
        self.ready = ready
        self.image = image
        self.renders = []
        self.qualities = []

    def render(self, stage) -> None:
        self.renders.append(
            {
                "grid": stage.grid.visible,
                "key": stage.key_gizmo.visible,
                "fill": stage.fill_gizmo.visible,
                "transform_enabled": stage.transform.enabled,
                "transform_visible": stage.transform.visible,
            },
        )

    def read_image(self, quality: float) -> bytes:
        self.qualities.append(quality)
        return self.image


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def studio():
    """A stage and its state with a primitive subject, never touching the network."""
    return open_stage(SceneParams(subject_model=SubjectModel.CUBE), loader=OfflineLoader())
