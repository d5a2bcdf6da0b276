import json

import pytest

from fibo_bridge.models import (
    ControlMode,
    GeneratedShot,
    LightSettings,
    SceneParams,
    ShotSize,
    SubjectModel,
    Vector3,
    VisualStyle,
)
from fibo_bridge.persistence import (
    deserialize_params,
    deserialize_session,
    export_filename,
    load_session,
    save_session,
    serialize_params,
    serialize_session,
    shot_filename,
)
from fibo_bridge.state import SceneState


def _custom_params() -> SceneParams:
    return SceneParams(
        subject_description="A lighthouse keeper",
        subject_model=SubjectModel.HELMET,
        key_light=LightSettings(
            position=Vector3(x=-1, y=3, z=0.5),
            intensity=2.0,
            color_temp=3200,
            gel="#f97316",
        ),
        fill_light=LightSettings(enabled=False),
        shot_size=ShotSize.MEDIUM,
        visual_style=VisualStyle.ETHEREAL,
    )


@pytest.mark.parametrize("params", [SceneParams(), _custom_params()])
def test_params_round_trip(params):
    assert deserialize_params(serialize_params(params)) == params


def test_document_uses_camel_case():
    document = json.loads(serialize_params(SceneParams()))
    assert document["subjectDescription"].startswith("A futuristic")
    assert document["keyLight"]["colorTemp"] == 5600
    assert document["fillLight"]["position"] == {"x": 2.0, "y": 1.5, "z": -2.0}


def test_missing_fill_light_gets_default():
    document = json.loads(serialize_params(_custom_params()))
    del document["fillLight"]

    params = deserialize_params(json.dumps(document))

    assert params.fill_light == SceneParams().fill_light
    assert params.key_light.color_temp == 3200


def test_partial_document_merges_onto_defaults():
    session = deserialize_session(json.dumps({"shotSize": "Close Up", "mode": "DRAG_KEY"}))
    assert session.shot_size is ShotSize.CLOSE_UP
    assert session.mode is ControlMode.DRAG_KEY
    assert session.lens_type.value == "35mm"
    assert session.gallery == []


def test_old_documents_with_extra_keys_load():
    text = json.dumps({"falApiKey": "abc", "isGenerating": True, "visualStyle": "Film Noir"})
    session = deserialize_session(text)
    assert session.visual_style is VisualStyle.FILM_NOIR


@pytest.mark.parametrize("text", ["{not json", "[1, 2]", "42", ""])
def test_invalid_json(text):
    with pytest.raises(ValueError, match="Invalid JSON file"):
        deserialize_session(text)


def test_session_round_trip_keeps_gallery():
    state = SceneState()
    state.set_field("visual_style", VisualStyle.CYBERPUNK)
    shot = GeneratedShot(
        id="1700000000000",
        timestamp=1700000000000,
        image_url="data:image/png;base64,AAAA",
        params=_custom_params(),
        engine="GEMINI",
    )
    state.add_shot(shot)
    state.view_shot(shot.id)
    state.api_key = "do-not-save"

    text = serialize_session(state)
    session = deserialize_session(text)

    assert "do-not-save" not in text
    assert session.scene_params() == state.get()
    assert session.gallery == [shot]
    assert session.viewing_shot_id == shot.id


def test_save_and_load(tmp_path):
    state = SceneState()
    state.apply_preset("Butterfly")
    path = save_session(tmp_path / "scenes" / "scene.json", state)

    session = load_session(path)

    assert session.key_light.position == Vector3(x=0, y=4, z=-3)
    assert session.fill_light.intensity == 0.4


def test_filenames():
    assert export_filename().startswith("fibo-scene-")
    assert export_filename().endswith(".json")

    shot = GeneratedShot(
        id="123",
        timestamp=123,
        image_url="https://example.com/x.png",
        params=SceneParams(),
        engine="FAL",
    )
    assert shot_filename(shot) == "fibo-scene-123.json"
    assert shot_filename(shot, ".png") == "fibo-shot-123.png"


def test_field_name_documents_load():
    text = json.dumps({"shot_size": "Close Up", "subject_description": "A violinist"})

    session = deserialize_session(text)

    assert session.shot_size is ShotSize.CLOSE_UP
    assert session.subject_description == "A violinist"
    assert session.lens_type.value == "35mm"


def test_plain_model_dump_round_trips():
    params = _custom_params().model_copy(update={"shot_size": ShotSize.CLOSE_UP})
    assert deserialize_params(params.model_dump_json()) == params
