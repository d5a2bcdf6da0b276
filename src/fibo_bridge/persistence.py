"""Saving and loading scene documents as JSON."""

import json
import time
from pathlib import Path

from .models import GeneratedShot, SceneParams, Session
from .state import SceneState


def _dump(model) -> str:
    return model.model_dump_json(by_alias=True, indent=2)


def serialize_params(params: SceneParams) -> str:
    return _dump(params)


def deserialize_params(text: str) -> SceneParams:
    return SceneParams.model_validate(_load_object(text))


def serialize_session(state: SceneState) -> str:
    """The whole session as a JSON document (never includes the API key)."""
    return _dump(state.to_session())


def deserialize_session(text: str) -> Session:
    """Parse a session document, filling anything it lacks from the defaults.

    Missing top-level keys take their defaults, so an older document without,
    say, ``fillLight`` gets the default fill light instead of failing. Keys may
    be camelCase or field names.

    Raises:
        ValueError: If ``text`` is not a JSON object.
        pydantic.ValidationError: If a field present has an invalid value.

    """
    return Session.model_validate(_load_object(text))


def _load_object(text: str) -> dict:
    try:
        loaded = json.loads(text)
    except json.JSONDecodeError as e:
        msg = "Invalid JSON file"
        raise ValueError(msg) from e
    if not isinstance(loaded, dict):
        msg = "Invalid JSON file"
        raise ValueError(msg)
    return loaded


def save_session(path: Path, state: SceneState) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w") as f:
        f.write(serialize_session(state))
    return path


def load_session(path: Path) -> Session:
    with path.open("r") as f:
        return deserialize_session(f.read())


def export_filename() -> str:
    return f"fibo-scene-{int(time.time() * 1000)}.json"


def shot_filename(shot: GeneratedShot, suffix: str = ".json") -> str:
    stem = "fibo-scene" if suffix == ".json" else "fibo-shot"
    return f"{stem}-{shot.id}{suffix}"
