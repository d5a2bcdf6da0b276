"""The single source of truth for the staged scene."""

import logging
import math
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel

from .models import (
    DEFAULT_PARAMS,
    LIGHTING_PRESETS,
    ActiveLight,
    ControlMode,
    GeneratedShot,
    SceneParams,
    Session,
    SubjectModel,
    Vector3,
)
from .rig import RenderState, derive_render_state

logger = logging.getLogger(__name__)

# The stage camera starts behind the subject, looking down +z.
DEFAULT_AZIMUTH = math.pi

Subscriber = Callable[["SceneState"], None]


def _field_name(model: type[BaseModel], key: str) -> str:
    """Resolve a field given by name or by its JSON alias."""
    if key in model.model_fields:
        return key
    for name, field in model.model_fields.items():
        if field.alias == key:
            return name
    msg = f"{model.__name__} has no field {key!r}"
    raise KeyError(msg)


def _updated(model: BaseModel, updates: Mapping[str, Any]) -> Any:
    """Validated copy of ``model`` with ``updates`` applied."""
    data = model.model_dump()
    for key, value in updates.items():
        data[_field_name(type(model), key)] = value
    return type(model).model_validate(data)


class SceneState:
    """Owns the live ``SceneParams`` and the session around it.

    Scene values are immutable, so ``get()`` hands out the current snapshot
    itself. Each mutation validates, swaps in a new snapshot, recomputes the
    render state and notifies subscribers, so derived state is never stale.
    """

    def __init__(
        self,
        params: SceneParams | None = None,
        *,
        azimuth_source: Callable[[], float] | None = None,
        on_model_change: Callable[[SubjectModel], None] | None = None,
    ) -> None:
        self._params = params or DEFAULT_PARAMS
        self._azimuth_source = azimuth_source or (lambda: DEFAULT_AZIMUTH)
        self._on_model_change = on_model_change
        self._subscribers: list[Subscriber] = []

        self.mode = ControlMode.ORBIT
        self.active_light = ActiveLight.KEY
        self.gallery: list[GeneratedShot] = []
        self.viewing_shot_id: str | None = None
        self.is_gallery_open = True
        self.api_key = ""

        self._render_state = derive_render_state(self._params, self._azimuth_source())

    def get(self) -> SceneParams:
        return self._params

    @property
    def render_state(self) -> RenderState:
        return self._render_state

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Call ``callback(state)`` after every change; returns an unsubscribe."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def refresh(self) -> None:
        """Recompute derived render state and notify subscribers."""
        self._render_state = derive_render_state(self._params, self._azimuth_source())
        for callback in list(self._subscribers):
            callback(self)

    # --- scene mutations ---

    def set_field(self, key: str, value: Any) -> None:
        params = _updated(self._params, {key: value})
        reload = params.subject_model != self._params.subject_model
        self._commit(params, reload=reload)

    def set_key_light_field(self, key: str, value: Any) -> None:
        light = _updated(self._params.key_light, {key: value})
        self._commit(self._params.model_copy(update={"key_light": light}))

    def set_fill_light_field(self, key: str, value: Any) -> None:
        light = _updated(self._params.fill_light, {key: value})
        self._commit(self._params.model_copy(update={"fill_light": light}))

    def set_active_light_field(self, key: str, value: Any) -> None:
        """Edit whichever light is selected in the lighting panel."""
        if self.active_light is ActiveLight.KEY:
            self.set_key_light_field(key, value)
        else:
            self.set_fill_light_field(key, value)

    def replace_all(self, params: SceneParams | Mapping[str, Any]) -> None:
        """Swap in a whole new scene, e.g. on import. Always reloads the subject."""
        if not isinstance(params, SceneParams):
            params = SceneParams.model_validate(params)
        self._commit(params, reload=True)

    def apply_preset(self, name: str) -> None:
        """Move both lights into a classic setup such as "Rembrandt"."""
        preset = LIGHTING_PRESETS[name]
        key = self._params.key_light.model_copy(update={"position": preset.key_position})
        fill = self._params.fill_light.model_copy(
            update={
                "position": preset.fill_position,
                "intensity": preset.fill_intensity,
            },
        )
        self._commit(self._params.model_copy(update={"key_light": key, "fill_light": fill}))

    def drag_to(self, position: Vector3) -> bool:
        """Write a dragged gizmo position back into its light.

        Returns False in orbit mode, where no gizmo is attached.
        """
        if self.mode is ControlMode.DRAG_KEY:
            self.set_key_light_field("position", position)
        elif self.mode is ControlMode.DRAG_FILL:
            self.set_fill_light_field("position", position)
        else:
            return False
        return True

    def _commit(self, params: SceneParams, *, reload: bool = False) -> None:
        self._params = params
        if reload:
            self._reload_model()
        self.refresh()

    def _reload_model(self) -> None:
        logger.debug("Reloading subject %s", self._params.subject_model.value)
        if self._on_model_change is not None:
            self._on_model_change(self._params.subject_model)

    # --- session state ---

    def set_mode(self, mode: ControlMode) -> None:
        self.mode = ControlMode(mode)
        self.refresh()

    def set_active_light(self, which: ActiveLight) -> None:
        self.active_light = ActiveLight(which)
        self.refresh()

    def toggle_gallery(self) -> bool:
        self.is_gallery_open = not self.is_gallery_open
        return self.is_gallery_open

    def add_shot(self, shot: GeneratedShot) -> None:
        """Prepend a shot; the gallery is kept newest first."""
        self.gallery.insert(0, shot)

    def find_shot(self, shot_id: str) -> GeneratedShot | None:
        return next((s for s in self.gallery if s.id == shot_id), None)

    def view_shot(self, shot_id: str | None) -> None:
        if shot_id is not None and self.find_shot(shot_id) is None:
            msg = f"No shot with id {shot_id!r}"
            raise KeyError(msg)
        self.viewing_shot_id = shot_id

    def to_session(self) -> Session:
        return Session.model_validate(
            {
                **self._params.model_dump(),
                "mode": self.mode,
                "active_light": self.active_light,
                "gallery": list(self.gallery),
                "viewing_shot_id": self.viewing_shot_id,
                "is_gallery_open": self.is_gallery_open,
            },
        )

    def load_session(self, session: Session) -> None:
        """Replace everything with a loaded session document."""
        self.mode = session.mode
        self.active_light = session.active_light
        self.gallery = list(session.gallery)
        self.viewing_shot_id = session.viewing_shot_id
        self.is_gallery_open = session.is_gallery_open
        self.replace_all(session.scene_params())
