from dataclasses import dataclass
from enum import Enum, auto
import os


class ResourceKind(Enum):
    """Kinds of external resources a realized scene may request."""
    IMAGE = auto()
    VIDEO = auto()
    MODEL = auto()


@dataclass
class SceneSettings:
    """All load/build settings. Defaults match a plain desktop viewer."""

    # Resources
    scene_dir: str = ""           # base directory for texture/model paths
    resource_workers: int = 4

    # Cameras
    aspect: float = 16.0 / 9.0

    # Two-sided surfaces
    split_two_sided: bool = True
    back_face_offset: float = 0.2   # z offset of the back rectangle
    nurbs_front_scale: float = 0.980
    nurbs_back_scale: float = 1.015

    # Graph traversal
    max_graph_depth: int = 10000  # nesting levels before the build gives up

    # Lights
    light_helper_size: float = 1.0

    # Logging
    max_log_messages: int = 500

    def resolve_path(self, relative: str) -> str:
        """Resolve a document-relative resource path against scene_dir."""
        if not relative:
            return relative
        if os.path.isabs(relative):
            return relative
        return os.path.join(self.scene_dir, relative)
