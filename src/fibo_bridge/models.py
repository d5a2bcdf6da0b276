"""Pydantic data models for the Fibo Bridge stage."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SubjectModel(str, Enum):
    """Subjects that can be placed on the stage."""

    MANNEQUIN = "Mannequin"
    GEOMETRIC = "Geometric"
    CUBE = "Cube"
    BOOMBOX = "BoomBox"
    DRAGON = "Dragon"
    HELMET = "Helmet"
    CAR = "Car"


class CameraAngle(str, Enum):
    EYE_LEVEL = "Eye Level"
    HIGH = "High Angle"
    LOW = "Low Angle"
    DUTCH = "Dutch Angle"


class LensType(str, Enum):
    MM_24 = "24mm"
    MM_35 = "35mm"
    MM_50 = "50mm"
    MM_85 = "85mm"


class ShotSize(str, Enum):
    CLOSE_UP = "Close Up"
    MEDIUM = "Medium Shot"
    FULL = "Full Shot"
    WIDE = "Wide Shot"


class VisualStyle(str, Enum):
    CINEMATIC = "Cinematic"
    FILM_NOIR = "Film Noir"
    CYBERPUNK = "Cyberpunk"
    ETHEREAL = "Ethereal"
    DOCUMENTARY = "Documentary"


class ControlMode(str, Enum):
    """Which object the drag gizmo is attached to."""

    ORBIT = "ORBIT"
    DRAG_KEY = "DRAG_KEY"
    DRAG_FILL = "DRAG_FILL"


class ActiveLight(str, Enum):
    KEY = "key"
    FILL = "fill"


class Engine(str, Enum):
    """External image generation engines."""

    GEMINI = "GEMINI"
    BRIA = "BRIA"
    FAL = "FAL"


KELVIN_MIN = 2000
KELVIN_MAX = 10000


class _SceneModel(BaseModel):
    """Immutable scene value serialized with camelCase keys."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Vector3(_SceneModel):
    """A point on the stage, in metres."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class LightSettings(_SceneModel):
    """Settings of one light as the cinematographer sees them."""

    position: Vector3 = Vector3(x=-2, y=2, z=-2)
    intensity: float = Field(default=1.0, ge=0)
    color_temp: int = Field(default=5600, ge=KELVIN_MIN, le=KELVIN_MAX)
    gel: str = Field(default="#ffffff", pattern=r"^#[0-9a-fA-F]{6}$")
    enabled: bool = True


DEFAULT_LIGHT = LightSettings()


class SceneParams(_SceneModel):
    """Everything that describes the shot being staged."""

    subject_description: str = "A futuristic cyberpunk detective standing in the rain"
    subject_model: SubjectModel = SubjectModel.MANNEQUIN
    key_light: LightSettings = DEFAULT_LIGHT.model_copy(
        update={"position": Vector3(x=-2, y=2.5, z=-2), "intensity": 1.2},
    )
    fill_light: LightSettings = DEFAULT_LIGHT.model_copy(
        update={"position": Vector3(x=2, y=1.5, z=-2), "intensity": 0.3},
    )
    camera_angle: CameraAngle = CameraAngle.EYE_LEVEL
    lens_type: LensType = LensType.MM_35
    shot_size: ShotSize = ShotSize.WIDE
    visual_style: VisualStyle = VisualStyle.CINEMATIC


DEFAULT_PARAMS = SceneParams()


class GeneratedShot(_SceneModel):
    """A generated still together with the scene that produced it."""

    id: str
    timestamp: int  # ms since epoch
    image_url: str  # remote URL or data: URL
    params: SceneParams
    engine: Engine


class Session(SceneParams):
    """The saved document: scene parameters plus session state."""

    model_config = ConfigDict(extra="ignore")

    mode: ControlMode = ControlMode.ORBIT
    active_light: ActiveLight = ActiveLight.KEY
    gallery: list[GeneratedShot] = Field(default_factory=list)
    viewing_shot_id: str | None = None
    is_gallery_open: bool = True

    def scene_params(self) -> SceneParams:
        """Extract the scene parameters from the session."""
        return SceneParams.model_validate(
            self.model_dump(include=set(SceneParams.model_fields)),
        )


class GelPreset(BaseModel):
    name: str
    hex: str


GEL_PRESETS = [
    GelPreset(name="Neutral", hex="#ffffff"),
    GelPreset(name="Red", hex="#ef4444"),
    GelPreset(name="Blue", hex="#3b82f6"),
    GelPreset(name="Green", hex="#22c55e"),
    GelPreset(name="Orange", hex="#f97316"),
    GelPreset(name="Purple", hex="#a855f7"),
    GelPreset(name="Teal", hex="#14b8a6"),
    GelPreset(name="Magenta", hex="#d946ef"),
]


class LightingPreset(BaseModel):
    """Classic two-light placement."""

    key_position: Vector3
    fill_position: Vector3
    fill_intensity: float


LIGHTING_PRESETS = {
    "Rembrandt": LightingPreset(
        key_position=Vector3(x=-2.5, y=2.5, z=-2.5),
        fill_position=Vector3(x=2, y=1, z=-1.5),
        fill_intensity=0.2,
    ),
    "Split": LightingPreset(
        key_position=Vector3(x=-4, y=1.5, z=0),
        fill_position=Vector3(x=4, y=1.5, z=0),
        fill_intensity=0.1,
    ),
    "Butterfly": LightingPreset(
        key_position=Vector3(x=0, y=4, z=-3),
        fill_position=Vector3(x=0, y=0, z=-3),
        fill_intensity=0.4,
    ),
}


class GenerationConfig(BaseModel):
    """Configuration for a generation engine call."""

    model: str | None = None  # engine default when unset
    retries: int = 2
    min_wait: int = 2
    max_wait: int = 10
    timeout: float = 120.0
