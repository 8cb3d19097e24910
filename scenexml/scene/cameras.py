"""Camera realization."""

from __future__ import annotations

from typing import Dict, Tuple

from mathutils import Vector

from ..core.errors import ConsistencyError
from ..core.logging import SceneLogger
from ..core.types import SceneSettings
from ..data.render_scene import RenderCamera
from ..data.scene_data import ElementRecord, SceneDocument


def look_at_quaternion(location, target) -> Tuple[float, float, float, float]:
    """Orientation (wxyz) pointing the -Z axis from location to target, Y up."""
    direction = Vector(target) - Vector(location)
    if direction.length < 1e-9:
        return (1.0, 0.0, 0.0, 0.0)
    return tuple(direction.to_track_quat('-Z', 'Y'))


def build_camera(record: ElementRecord, settings: SceneSettings) -> RenderCamera:
    aspect = settings.aspect
    camera = RenderCamera(
        name=record.id,
        projection=record.type,
        aspect=aspect,
        position=record["location"],
        target=record["target"],
        orientation=look_at_quaternion(record["location"], record["target"]),
    )

    if record.type == "perspective":
        camera.fov = record["angle"]
        camera.near = record["near"]
        camera.far = record["far"]
    elif record.type == "orthogonal":
        # Frustum extents are halved, horizontal ones scaled to the viewport
        camera.left = record["left"] / 2 * aspect
        camera.right = record["right"] / 2 * aspect
        camera.top = record["top"] / 2
        camera.bottom = record["bottom"] / 2
        camera.near = record["near"] / 2
        camera.far = record["far"]
    else:
        raise ConsistencyError(
            f"inconsistency: unsupported camera type {record.type}!",
            element=record.type, ident=record.id,
        )
    return camera


def build_cameras(document: SceneDocument, settings: SceneSettings,
                  log: SceneLogger) -> Dict[str, RenderCamera]:
    cameras: Dict[str, RenderCamera] = {}
    for camera_id, record in document.cameras.items():
        cameras[camera_id] = build_camera(record, settings)
        log.info(f"Camera '{camera_id}': {record.type}")
    return cameras
