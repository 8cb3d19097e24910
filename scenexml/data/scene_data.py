"""Scene document data structures produced by the loader."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Tuple, Union

from ..core.errors import ConsistencyError
from ..core.logging import SceneLogger


class RGBA(NamedTuple):
    """Decoded colour. Alpha is carried for transparency, never clamped."""
    r: float
    g: float
    b: float
    a: float

    @property
    def rgb(self) -> Tuple[float, float, float]:
        return (self.r, self.g, self.b)


class Rectangle2D(NamedTuple):
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass
class ElementRecord:
    """Typed attribute values of one XML element plus its type tag."""
    type: str
    values: Dict[str, Any] = field(default_factory=dict)
    custom: Dict[str, Any] = field(default_factory=dict)  # free for applications

    def __getitem__(self, name: str) -> Any:
        return self.values[name]

    def __contains__(self, name: object) -> bool:
        return name in self.values

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    @property
    def id(self) -> Optional[str]:
        return self.values.get("id")


class TransformKind(Enum):
    SCALE = "scale"
    ROTATE = "rotate"
    TRANSLATE = "translate"


@dataclass(frozen=True)
class TransformOp:
    kind: TransformKind
    value: Tuple[float, float, float]


class PrimitiveSubtype(Enum):
    CYLINDER = "cylinder"
    RECTANGLE = "rectangle"
    TRIANGLE = "triangle"
    SPHERE = "sphere"
    NURBS = "nurbs"
    BOX = "box"
    MODEL3D = "model3d"
    POLYGON = "polygon"


class LightKind(Enum):
    POINT = "pointlight"
    SPOT = "spotlight"
    DIRECTIONAL = "directionallight"


@dataclass(eq=False)
class PrimitiveRecord:
    """A primitive with one or more alternative representations."""
    subtype: Optional[PrimitiveSubtype] = None
    representations: List[ElementRecord] = field(default_factory=list)
    loaded: bool = False

    @property
    def representation(self) -> ElementRecord:
        """The representation the subtype was taken from."""
        return self.representations[0]


@dataclass(eq=False)
class NodeRecord:
    """A graph node. Shared by identity across every parent referencing it."""
    id: str
    transformations: List[TransformOp] = field(default_factory=list)
    material_ids: List[str] = field(default_factory=list)   # 0 or 1 entries
    children: List["ChildRef"] = field(default_factory=list, repr=False)
    cast_shadows: bool = False
    receive_shadows: bool = False
    loaded: bool = False  # False while only a forward-reference placeholder
    custom: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def material_id(self) -> Optional[str]:
        return self.material_ids[0] if self.material_ids else None


@dataclass(eq=False)
class LodLevel:
    node: NodeRecord
    min_distance: float


@dataclass(eq=False)
class LODRecord:
    """A level-of-detail group of nodes selected by viewer distance."""
    id: str
    children: List[LodLevel] = field(default_factory=list, repr=False)
    loaded: bool = False
    custom: Dict[str, Any] = field(default_factory=dict, repr=False)


# --- Child references ---

@dataclass(eq=False)
class LightRef:
    light: ElementRecord

    @property
    def kind(self) -> LightKind:
        return LightKind(self.light.type)


@dataclass(eq=False)
class PrimitiveRef:
    primitive: PrimitiveRecord

    @property
    def subtype(self) -> Optional[PrimitiveSubtype]:
        return self.primitive.subtype


@dataclass(eq=False)
class NodeRef:
    node: NodeRecord


@dataclass(eq=False)
class LodRef:
    lod: LODRecord


ChildRef = Union[LightRef, PrimitiveRef, NodeRef, LodRef]


class SceneDocument:
    """All records of a loaded scene, keyed by id where the format has ids.

    Every id-keyed table rejects a second definition of the same id. The
    only sanctioned pre-existing record is a node/LOD placeholder created
    by a forward reference, which is populated in place by its declaration.
    """

    def __init__(self, log: Optional[SceneLogger] = None):
        self.log = log or SceneLogger()
        self.scene_dir = ""  # base for relative resource paths

        self.options: Optional[ElementRecord] = None
        self.skyboxes: Dict[str, ElementRecord] = {}
        self.fog: Optional[ElementRecord] = None

        self.textures: Dict[str, ElementRecord] = {}
        self.materials: Dict[str, ElementRecord] = {}
        self.lights: Dict[str, ElementRecord] = {}

        self.cameras: Dict[str, ElementRecord] = {}
        self.active_camera_id: Optional[str] = None

        self.nodes: Dict[str, NodeRecord] = {}
        self.lods: Dict[str, LODRecord] = {}
        self.root_id: Optional[str] = None

    # --- Globals ---

    def set_options(self, options: ElementRecord) -> None:
        self.options = options
        self.log.debug(f"added options {options.values}")

    def set_skybox(self, skybox: ElementRecord, skybox_id: str = "default") -> None:
        if skybox_id in self.skyboxes:
            raise ConsistencyError(
                f"inconsistency: a skybox with id {skybox_id} already exists!",
                element="skybox", ident=skybox_id,
            )
        self.skyboxes[skybox_id] = skybox
        self.log.debug(f"added skybox {skybox_id}")

    @property
    def skybox(self) -> Optional[ElementRecord]:
        return self.skyboxes.get("default")

    def set_fog(self, fog: ElementRecord) -> None:
        self.fog = fog
        self.log.debug(f"added fog {fog.values}")

    # --- Id-keyed tables ---

    def _add_unique(self, table: Dict[str, Any], kind: str, record: Any, ident: str) -> None:
        if ident in table:
            raise ConsistencyError(
                f"inconsistency: a {kind} with id {ident} already exists!",
                element=kind, ident=ident,
            )
        table[ident] = record
        self.log.debug(f"added {kind} {ident}")

    def add_texture(self, texture: ElementRecord) -> None:
        self._add_unique(self.textures, "texture", texture, texture.id)

    def get_texture(self, texture_id: str) -> Optional[ElementRecord]:
        return self.textures.get(texture_id)

    def add_material(self, material: ElementRecord) -> None:
        self._add_unique(self.materials, "material", material, material.id)

    def get_material(self, material_id: str) -> Optional[ElementRecord]:
        return self.materials.get(material_id)

    def add_camera(self, camera: ElementRecord) -> None:
        if camera.type not in ("orthogonal", "perspective"):
            raise ConsistencyError(
                f"inconsistency: unsupported camera type {camera.type}!",
                element=camera.type, ident=camera.id,
            )
        self._add_unique(self.cameras, "camera", camera, camera.id)

    def get_camera(self, camera_id: str) -> Optional[ElementRecord]:
        return self.cameras.get(camera_id)

    def add_light(self, light: ElementRecord) -> None:
        self._add_unique(self.lights, "light", light, light.id)

    def get_light(self, light_id: str) -> Optional[ElementRecord]:
        return self.lights.get(light_id)

    # --- Nodes ---

    def get_node(self, node_id: str) -> Optional[NodeRecord]:
        return self.nodes.get(node_id)

    def add_node(self, node: NodeRecord) -> None:
        self._add_unique(self.nodes, "node", node, node.id)

    def create_empty_node(self, node_id: str) -> NodeRecord:
        node = NodeRecord(id=node_id)
        self.add_node(node)
        return node

    def get_or_create_node(self, node_id: str) -> NodeRecord:
        """Existing record for the id, else a new unloaded placeholder."""
        node = self.get_node(node_id)
        if node is None:
            node = self.create_empty_node(node_id)
        return node

    def declare_node(self, node_id: str) -> NodeRecord:
        """Record to populate for a real `<node>` declaration."""
        node = self.get_or_create_node(node_id)
        if node.loaded:
            raise ConsistencyError(
                f"inconsistency: node {node_id} is declared more than once!",
                element="node", ident=node_id,
            )
        return node

    def add_child_to_node(self, node: NodeRecord, child: ChildRef) -> None:
        if child is None:
            raise ConsistencyError(
                f"inconsistency: undefined child added to node {node.id}!",
                element="node", ident=node.id,
            )
        node.children.append(child)

    # --- LODs ---

    def get_lod(self, lod_id: str) -> Optional[LODRecord]:
        return self.lods.get(lod_id)

    def add_lod(self, lod: LODRecord) -> None:
        self._add_unique(self.lods, "LOD", lod, lod.id)

    def create_empty_lod(self, lod_id: str) -> LODRecord:
        lod = LODRecord(id=lod_id)
        self.add_lod(lod)
        return lod

    def get_or_create_lod(self, lod_id: str) -> LODRecord:
        lod = self.get_lod(lod_id)
        if lod is None:
            lod = self.create_empty_lod(lod_id)
        return lod

    def declare_lod(self, lod_id: str) -> LODRecord:
        lod = self.get_or_create_lod(lod_id)
        if lod.loaded:
            raise ConsistencyError(
                f"inconsistency: LOD {lod_id} is declared more than once!",
                element="lod", ident=lod_id,
            )
        return lod

    @staticmethod
    def create_empty_primitive() -> PrimitiveRecord:
        return PrimitiveRecord()

    # --- Queries ---

    @property
    def root(self) -> Optional[NodeRecord]:
        return self.nodes.get(self.root_id) if self.root_id is not None else None

    def unloaded_ids(self) -> List[str]:
        """Ids referenced somewhere but never declared."""
        ids = [f"node '{n.id}'" for n in self.nodes.values() if not n.loaded]
        ids += [f"LOD '{lod.id}'" for lod in self.lods.values() if not lod.loaded]
        return ids


def _graph_successors(record: Union[NodeRecord, LODRecord]) -> Iterator[Union[NodeRecord, LODRecord]]:
    if isinstance(record, LODRecord):
        for level in record.children:
            yield level.node
        return
    for child in record.children:
        if isinstance(child, NodeRef):
            yield child.node
        elif isinstance(child, LodRef):
            yield child.lod


def _label(record: Union[NodeRecord, LODRecord]) -> str:
    kind = "lod" if isinstance(record, LODRecord) else "node"
    return f"{kind}:{record.id}"


def find_cycle(document: SceneDocument) -> Optional[List[str]]:
    """Return one reference cycle among nodes/LODs as a label path, or None.

    Depth-first over an explicit stack so arbitrarily deep graphs do not
    exhaust the interpreter stack. Records on the current path are grey,
    finished ones black.
    """
    grey, black = set(), set()

    for start in list(document.nodes.values()) + list(document.lods.values()):
        if id(start) in black:
            continue
        path: List[Union[NodeRecord, LODRecord]] = [start]
        stack = [_graph_successors(start)]
        grey.add(id(start))
        while stack:
            successor = next(stack[-1], None)
            if successor is None:
                stack.pop()
                done = path.pop()
                grey.discard(id(done))
                black.add(id(done))
                continue
            key = id(successor)
            if key in black:
                continue
            if key in grey:
                first = next(i for i, r in enumerate(path) if r is successor)
                return [_label(r) for r in path[first:]] + [_label(successor)]
            grey.add(key)
            path.append(successor)
            stack.append(_graph_successors(successor))
    return None
