"""Render-ready scene hierarchy produced by the hierarchy builder."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from mathutils import Euler, Matrix, Quaternion, Vector

from ..core.errors import ConsistencyError
from ..materials.material_library import MaterialInstance, TextureInstance
from ..materials.texture_resolver import ResourceRequest
from ..mesh.geometry import Geometry
from .scene_data import RGBA, LightKind

Vec3 = Tuple[float, float, float]


@dataclass(eq=False)
class RenderObject:
    """Base of every object in the hierarchy."""
    name: str = ""
    position: Vec3 = (0.0, 0.0, 0.0)
    rotation: Vec3 = (0.0, 0.0, 0.0)            # XYZ Euler, radians
    orientation: Optional[Tuple[float, float, float, float]] = None  # wxyz, overrides rotation
    scale: Vec3 = (1.0, 1.0, 1.0)
    visible: bool = True
    cast_shadow: bool = False
    receive_shadow: bool = False
    children: List["RenderObject"] = field(default_factory=list, repr=False)
    parent: Optional["RenderObject"] = field(default=None, repr=False)

    def add(self, child: "RenderObject") -> "RenderObject":
        child.parent = self
        self.children.append(child)
        return child

    @property
    def quaternion(self) -> Quaternion:
        if self.orientation is not None:
            return Quaternion(self.orientation)
        return Euler(self.rotation, 'XYZ').to_quaternion()

    def matrix_local(self) -> Matrix:
        return Matrix.LocRotScale(Vector(self.position), self.quaternion, Vector(self.scale))

    def matrix_world(self) -> Matrix:
        matrix = self.matrix_local()
        ancestor = self.parent
        while ancestor is not None:
            matrix = ancestor.matrix_local() @ matrix
            ancestor = ancestor.parent
        return matrix

    def world_position(self) -> Vec3:
        return tuple(self.matrix_world().to_translation())

    def walk(self) -> Iterator["RenderObject"]:
        """Pre-order iteration over this object and its descendants."""
        for obj, _ in self.walk_with_depth():
            yield obj

    def walk_with_depth(self) -> Iterator[Tuple["RenderObject", int]]:
        """Pre-order (object, depth) pairs, depth 0 for this object."""
        stack = [(self, 0)]
        while stack:
            obj, depth = stack.pop()
            yield obj, depth
            stack.extend((child, depth + 1) for child in reversed(obj.children))


@dataclass(eq=False)
class RenderGroup(RenderObject):
    """A realized graph node."""
    material: Optional[MaterialInstance] = field(default=None, repr=False)


@dataclass(eq=False)
class RenderMesh(RenderObject):
    geometry: Optional[Geometry] = None
    material: Optional[MaterialInstance] = field(default=None, repr=False)
    lod_distance: float = 0.0


@dataclass(eq=False)
class LodLevelInstance:
    distance: float
    object: RenderObject


@dataclass(eq=False)
class RenderLod(RenderObject):
    levels: List[LodLevelInstance] = field(default_factory=list, repr=False)

    def add_level(self, obj: RenderObject, distance: float) -> None:
        self.add(obj)
        self.levels.append(LodLevelInstance(distance, obj))

    def object_for_distance(self, distance: float) -> Optional[RenderObject]:
        """Level with the largest threshold not above `distance`."""
        chosen = None
        for level in sorted(self.levels, key=lambda lv: lv.distance):
            if level.distance > distance:
                break
            chosen = level.object
        if chosen is None and self.levels:
            chosen = min(self.levels, key=lambda lv: lv.distance).object
        return chosen


@dataclass(eq=False)
class RenderLight(RenderObject):
    kind: LightKind = LightKind.POINT
    color: RGBA = RGBA(1.0, 1.0, 1.0, 1.0)
    intensity: float = 1.0
    distance: float = 0.0
    decay: float = 2.0
    angle: float = 0.0            # spot cone angle
    penumbra: float = 0.0
    target: Optional[Vec3] = None
    shadow_map_size: int = 512
    shadow_far: float = 500.0
    shadow_frustum: Optional[Tuple[float, float, float, float]] = None  # left, right, bottom, top
    helper: Optional["DebugHelper"] = field(default=None, repr=False)


@dataclass(eq=False)
class DebugHelper:
    """Visual aid for a light; hidden until the application shows it."""
    light: RenderLight = field(repr=False)
    size: float = 1.0
    visible: bool = False

    @property
    def name(self) -> str:
        return f"{self.light.name}_helper"


@dataclass(eq=False)
class RenderCamera(RenderObject):
    projection: str = "perspective"   # perspective, orthogonal
    fov: float = 50.0
    aspect: float = 1.0
    near: float = 0.1
    far: float = 1000.0
    left: float = -1.0
    right: float = 1.0
    top: float = 1.0
    bottom: float = -1.0
    target: Vec3 = (0.0, 0.0, 0.0)


@dataclass
class RenderFog:
    color: RGBA
    near: float
    far: float


@dataclass
class RenderEnvironment:
    background: Optional[RGBA] = None
    ambient: Optional[RGBA] = None
    fog: Optional[RenderFog] = None
    skybox: Optional[RenderMesh] = None
    skybox_faces: List[MaterialInstance] = field(default_factory=list, repr=False)


@dataclass(eq=False)
class RealizedScene:
    root: RenderGroup = field(default_factory=RenderGroup)
    cameras: Dict[str, RenderCamera] = field(default_factory=dict)
    active_camera_id: Optional[str] = None
    lights: List[RenderLight] = field(default_factory=list)
    helpers: List[DebugHelper] = field(default_factory=list)
    textures: Dict[str, TextureInstance] = field(default_factory=dict)
    materials: Dict[str, MaterialInstance] = field(default_factory=dict)
    material_instances: List[MaterialInstance] = field(default_factory=list, repr=False)
    environment: RenderEnvironment = field(default_factory=RenderEnvironment)
    resource_requests: List[ResourceRequest] = field(default_factory=list, repr=False)

    @property
    def active_camera(self) -> Optional[RenderCamera]:
        return self.cameras.get(self.active_camera_id) if self.active_camera_id else None

    def set_active_camera(self, camera_id: str) -> RenderCamera:
        if camera_id not in self.cameras:
            raise ConsistencyError(f"camera '{camera_id}' does not exist", ident=camera_id)
        self.active_camera_id = camera_id
        return self.cameras[camera_id]

    def set_wireframe(self, enabled: bool) -> None:
        """Force wireframe on every material in use, or restore declared values."""
        for material in self.material_instances:
            material.wireframe = True if enabled else material.wireframe_default

    def set_helpers_visible(self, visible: bool) -> None:
        for helper in self.helpers:
            helper.visible = visible

    def walk(self) -> Iterator[RenderObject]:
        return self.root.walk()

    def meshes(self) -> List[RenderMesh]:
        return [obj for obj in self.walk() if isinstance(obj, RenderMesh)]

    def find(self, name: str) -> List[RenderObject]:
        """Every object with the given name; shared nodes appear once per use."""
        return [obj for obj in self.walk() if obj.name == name]
