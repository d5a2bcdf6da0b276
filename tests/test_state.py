from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from fibo_bridge.models import (
    ActiveLight,
    ControlMode,
    GeneratedShot,
    SceneParams,
    ShotSize,
    SubjectModel,
    Vector3,
    VisualStyle,
)
from fibo_bridge.rig import derive_render_state
from fibo_bridge.state import DEFAULT_AZIMUTH, SceneState


def _shot(shot_id: str) -> GeneratedShot:
    return GeneratedShot(
        id=shot_id,
        timestamp=int(shot_id),
        image_url=f"https://example.com/{shot_id}.png",
        params=SceneParams(),
        engine="GEMINI",
    )


def test_set_field_notifies_with_fresh_render_state():
    state = SceneState()
    seen = []
    state.subscribe(lambda s: seen.append(s.render_state.camera.fov))

    state.set_field("lens_type", "85mm")

    assert state.get().lens_type.value == "85mm"
    assert seen == [24]


def test_set_field_accepts_json_keys():
    state = SceneState()
    state.set_field("shotSize", "Close Up")
    assert state.get().shot_size is ShotSize.CLOSE_UP
    assert state.render_state.camera.target.y == 1.65


def test_invalid_value_leaves_state_unchanged():
    state = SceneState()
    callback = MagicMock()
    state.subscribe(callback)
    before = state.get()

    with pytest.raises(ValidationError):
        state.set_key_light_field("colorTemp", 12000)
    with pytest.raises(KeyError):
        state.set_field("focalLength", 50)

    assert state.get() is before
    callback.assert_not_called()


def test_snapshots_are_not_affected_by_later_edits():
    state = SceneState()
    snapshot = state.get()
    state.set_field("visual_style", VisualStyle.FILM_NOIR)
    assert snapshot.visual_style is VisualStyle.CINEMATIC
    assert state.get().visual_style is VisualStyle.FILM_NOIR


def test_light_fields_update_render_state():
    state = SceneState()
    state.set_key_light_field("color_temp", 2000)
    state.set_fill_light_field("enabled", False)

    render = state.render_state
    assert render == derive_render_state(state.get(), DEFAULT_AZIMUTH)
    assert render.key_light.color.b < 0.1
    assert render.fill_light.intensity == 0
    assert not render.fill_light.visible


def test_active_light_field_goes_to_selected_light():
    state = SceneState()
    state.set_active_light_field("intensity", 2.0)
    assert state.get().key_light.intensity == 2.0

    state.set_active_light(ActiveLight.FILL)
    state.set_active_light_field("gel", "#ef4444")
    assert state.get().fill_light.gel == "#ef4444"
    assert state.get().key_light.gel == "#ffffff"


def test_subject_reload_only_when_model_changes():
    reload = MagicMock()
    state = SceneState(on_model_change=reload)

    state.set_field("subject_description", "A knight")
    reload.assert_not_called()

    state.set_field("subject_model", SubjectModel.DRAGON)
    reload.assert_called_once_with(SubjectModel.DRAGON)

    state.set_field("subject_model", SubjectModel.DRAGON)
    assert reload.call_count == 1


def test_replace_all_always_reloads():
    reload = MagicMock()
    state = SceneState(on_model_change=reload)

    state.replace_all({"shotSize": "Medium Shot"})

    reload.assert_called_once_with(SubjectModel.MANNEQUIN)
    assert state.get().shot_size is ShotSize.MEDIUM
    assert state.get().lens_type.value == "35mm"


def test_apply_preset_moves_both_lights():
    state = SceneState()
    state.set_key_light_field("color_temp", 3200)
    state.apply_preset("Split")

    params = state.get()
    assert params.key_light.position == Vector3(x=-4, y=1.5, z=0)
    assert params.fill_light.position == Vector3(x=4, y=1.5, z=0)
    assert params.fill_light.intensity == 0.1
    # Other light settings are kept.
    assert params.key_light.color_temp == 3200
    assert params.key_light.intensity == 1.2


def test_unknown_preset():
    with pytest.raises(KeyError):
        SceneState().apply_preset("Clamshell")


def test_drag_to_follows_mode():
    state = SceneState()
    target = Vector3(x=1, y=3, z=1)

    assert state.drag_to(target) is False
    assert state.get().key_light.position != target

    state.set_mode(ControlMode.DRAG_FILL)
    assert state.drag_to(target) is True
    assert state.get().fill_light.position == target
    assert state.render_state.fill_light.position == target


def test_camera_uses_azimuth_source():
    azimuth = {"value": 0.0}
    state = SceneState(azimuth_source=lambda: azimuth["value"])
    assert state.render_state.camera.position.x == pytest.approx(0.0)

    azimuth["value"] = 1.0
    state.refresh()
    assert state.render_state.camera.position.x > 0


def test_unsubscribe():
    state = SceneState()
    callback = MagicMock()
    unsubscribe = state.subscribe(callback)
    state.refresh()
    unsubscribe()
    state.refresh()
    callback.assert_called_once_with(state)


def test_gallery_is_newest_first():
    state = SceneState()
    state.add_shot(_shot("1"))
    state.add_shot(_shot("2"))
    assert [s.id for s in state.gallery] == ["2", "1"]
    assert state.find_shot("1").id == "1"
    assert state.find_shot("3") is None


def test_view_shot():
    state = SceneState()
    state.add_shot(_shot("1"))
    state.view_shot("1")
    assert state.viewing_shot_id == "1"
    state.view_shot(None)
    assert state.viewing_shot_id is None
    with pytest.raises(KeyError):
        state.view_shot("42")


def test_toggle_gallery():
    state = SceneState()
    assert state.toggle_gallery() is False
    assert state.toggle_gallery() is True


def test_session_round_trip():
    state = SceneState()
    state.set_field("shot_size", ShotSize.FULL)
    state.set_mode(ControlMode.DRAG_KEY)
    state.add_shot(_shot("7"))
    state.view_shot("7")
    state.api_key = "secret"

    reload = MagicMock()
    restored = SceneState(on_model_change=reload)
    restored.load_session(state.to_session())

    assert restored.get() == state.get()
    assert restored.mode is ControlMode.DRAG_KEY
    assert restored.viewing_shot_id == "7"
    assert [s.id for s in restored.gallery] == ["7"]
    assert restored.api_key == ""
    reload.assert_called_once()
