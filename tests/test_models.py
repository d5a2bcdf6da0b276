import pytest
from pydantic import ValidationError

from fibo_bridge.models import (
    DEFAULT_PARAMS,
    GEL_PRESETS,
    LIGHTING_PRESETS,
    CameraAngle,
    GeneratedShot,
    LensType,
    LightSettings,
    SceneParams,
    Session,
    ShotSize,
    SubjectModel,
    Vector3,
    VisualStyle,
)


def test_default_scene():
    params = SceneParams()
    assert params.subject_model is SubjectModel.MANNEQUIN
    assert params.camera_angle is CameraAngle.EYE_LEVEL
    assert params.lens_type is LensType.MM_35
    assert params.shot_size is ShotSize.WIDE
    assert params.visual_style is VisualStyle.CINEMATIC
    assert params.key_light.position == Vector3(x=-2, y=2.5, z=-2)
    assert params.key_light.intensity == 1.2
    assert params.fill_light.position == Vector3(x=2, y=1.5, z=-2)
    assert params.fill_light.intensity == 0.3
    assert params.key_light.color_temp == 5600
    assert params.fill_light.gel == "#ffffff"
    assert params == DEFAULT_PARAMS


@pytest.mark.parametrize("temp", [1999, 10001])
def test_color_temperature_range(temp):
    with pytest.raises(ValidationError):
        LightSettings(color_temp=temp)


def test_temperature_bounds_are_inclusive():
    assert LightSettings(color_temp=2000).color_temp == 2000
    assert LightSettings(color_temp=10000).color_temp == 10000


@pytest.mark.parametrize("gel", ["red", "#fff", "#gggggg", "ffffff"])
def test_gel_must_be_hex(gel):
    with pytest.raises(ValidationError):
        LightSettings(gel=gel)


def test_negative_intensity_rejected():
    with pytest.raises(ValidationError):
        LightSettings(intensity=-0.1)


def test_unknown_enum_value_rejected():
    with pytest.raises(ValidationError):
        SceneParams(shot_size="Extreme Close Up")


def test_scene_values_are_frozen():
    params = SceneParams()
    with pytest.raises(ValidationError):
        params.shot_size = ShotSize.CLOSE_UP
    with pytest.raises(ValidationError):
        params.key_light.intensity = 2.0


def test_camel_case_keys():
    dumped = SceneParams().model_dump(mode="json", by_alias=True)
    assert dumped["subjectModel"] == "Mannequin"
    assert dumped["keyLight"]["colorTemp"] == 5600
    assert dumped["cameraAngle"] == "Eye Level"
    assert "fillLight" in dumped


def test_accepts_camel_case_and_field_names():
    by_alias = SceneParams.model_validate({"shotSize": "Close Up"})
    by_name = SceneParams(shot_size="Close Up")
    assert by_alias == by_name


def test_session_ignores_unknown_keys():
    session = Session.model_validate({"falApiKey": "secret", "isGenerating": True})
    assert not hasattr(session, "falApiKey")
    assert session.gallery == []
    assert session.is_gallery_open


def test_session_scene_params():
    session = Session(shot_size=ShotSize.MEDIUM, is_gallery_open=False)
    params = session.scene_params()
    assert type(params) is SceneParams
    assert params.shot_size is ShotSize.MEDIUM


def test_shot_keeps_engine():
    shot = GeneratedShot(
        id="1",
        timestamp=1,
        image_url="https://example.com/a.png",
        params=SceneParams(),
        engine="BRIA",
    )
    assert shot.engine.value == "BRIA"
    assert shot.model_dump(by_alias=True)["imageUrl"] == "https://example.com/a.png"


def test_presets():
    assert [g.name for g in GEL_PRESETS][:3] == ["Neutral", "Red", "Blue"]
    assert set(LIGHTING_PRESETS) == {"Rembrandt", "Split", "Butterfly"}
