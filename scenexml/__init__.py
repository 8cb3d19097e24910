__version__ = "1.0.0"

from typing import Optional, Tuple

from .core.errors import (
    CardinalityError,
    ConsistencyError,
    DocumentLoadError,
    SceneError,
    SchemaError,
)
from .core.logging import SceneLogger
from .core.types import ResourceKind, SceneSettings
from .data.render_scene import RealizedScene
from .data.scene_data import SceneDocument
from .materials.texture_resolver import ResourceLoader, ResourceRequest
from .scene.hierarchy import build_scene_hierarchy
from .scene.loader import SceneLoader, load_scene_file, load_scene_string


def load_scene(
    filepath: str,
    settings: Optional[SceneSettings] = None,
    log: Optional[SceneLogger] = None,
) -> Tuple[SceneDocument, RealizedScene]:
    """Parse a scene file and realize its hierarchy in one step."""
    settings = settings or SceneSettings()
    log = log or SceneLogger(settings.max_log_messages)
    document = load_scene_file(filepath, settings, log)
    return document, build_scene_hierarchy(document, settings, log)


__all__ = [
    "CardinalityError",
    "ConsistencyError",
    "DocumentLoadError",
    "RealizedScene",
    "ResourceKind",
    "ResourceLoader",
    "ResourceRequest",
    "SceneDocument",
    "SceneError",
    "SceneLoader",
    "SceneLogger",
    "SceneSettings",
    "SchemaError",
    "build_scene_hierarchy",
    "load_scene",
    "load_scene_file",
    "load_scene_string",
]
