"""Scene graph traversal: SceneDocument -> RealizedScene."""

from __future__ import annotations

import dataclasses
import functools
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Set, Tuple

from ..core.errors import ConsistencyError
from ..core.logging import SceneLogger
from ..core.types import SceneSettings
from ..data.render_scene import (
    DebugHelper,
    RealizedScene,
    RenderGroup,
    RenderLight,
    RenderLod,
    RenderMesh,
    RenderObject,
)
from ..data.scene_data import (
    ElementRecord,
    LightKind,
    LightRef,
    LODRecord,
    LodRef,
    NodeRecord,
    NodeRef,
    PrimitiveRecord,
    PrimitiveRef,
    PrimitiveSubtype,
    SceneDocument,
    TransformKind,
    TransformOp,
)
from ..materials.material_library import MaterialInstance, MaterialLibrary, Side
from ..materials.texture_resolver import model_request
from ..mesh.geometry import (
    BoxGeometry,
    CylinderGeometry,
    ModelGeometry,
    PlaneGeometry,
    SphereGeometry,
    polygon_geometry,
    triangle_geometry,
)
from ..mesh.nurbs import nurbs_geometry
from .cameras import build_cameras
from .environment import build_environment

Vec3 = Tuple[float, float, float]


@dataclass(frozen=True)
class _Inherited:
    """State a parent passes down to its children."""
    material: Optional[MaterialInstance] = None
    cast_shadow: bool = False
    receive_shadow: bool = False


@dataclass
class _WorkItem:
    """One pending record of the traversal and where its result attaches."""
    record: Any
    attach: Optional[Callable[[RenderObject], Any]] = None
    inherited: _Inherited = _Inherited()
    depth: int = 0
    leave: bool = False   # closes `record` on the current path


def accumulate_transforms(transformations: List[TransformOp]) -> Tuple[Vec3, Vec3, Vec3]:
    """Collapse a transform list into (translation, rotation, scale).

    Translations and rotations add up, scales multiply; the result does
    not depend on the order the operations were declared in.
    """
    tx, ty, tz = 0.0, 0.0, 0.0
    rx, ry, rz = 0.0, 0.0, 0.0
    sx, sy, sz = 1.0, 1.0, 1.0
    for op in transformations:
        x, y, z = op.value
        if op.kind is TransformKind.TRANSLATE:
            tx, ty, tz = tx + x, ty + y, tz + z
        elif op.kind is TransformKind.ROTATE:
            rx, ry, rz = rx + x, ry + y, rz + z
        elif op.kind is TransformKind.SCALE:
            sx, sy, sz = sx * x, sy * y, sz * z
        else:
            raise ConsistencyError(f"unrecognized transformation {op.kind}")
    return (tx, ty, tz), (rx, ry, rz), (sx, sy, sz)


class HierarchyBuilder:
    """Builds one RealizedScene from a finished SceneDocument.

    The document is only read. Nodes and LODs referenced from several
    places are realized once per occurrence.
    """

    def __init__(self, document: SceneDocument, settings: SceneSettings,
                 log: SceneLogger):
        self.document = document
        self.settings = settings
        self.log = log
        self.library = MaterialLibrary(document, settings, log)
        self.scene = RealizedScene()
        self._active: Set[int] = set()   # records on the current traversal path
        self._primitive_builders = {
            PrimitiveSubtype.RECTANGLE: self._build_rectangle,
            PrimitiveSubtype.BOX: self._build_box,
            PrimitiveSubtype.CYLINDER: self._build_cylinder,
            PrimitiveSubtype.SPHERE: self._build_sphere,
            PrimitiveSubtype.TRIANGLE: self._build_triangle,
            PrimitiveSubtype.POLYGON: self._build_polygon,
            PrimitiveSubtype.NURBS: self._build_nurbs,
            PrimitiveSubtype.MODEL3D: self._build_model,
        }

    def build(self) -> RealizedScene:
        document = self.document
        root = document.root
        if root is None:
            raise ConsistencyError(
                f"scene graph root '{document.root_id}' is not a declared node",
                element="graph", ident=document.root_id,
            )

        self.library.build()
        scene = self.scene
        scene.environment = build_environment(document, self.library, self.settings, self.log)
        scene.cameras = build_cameras(document, self.settings, self.log)
        if document.active_camera_id is not None:
            scene.set_active_camera(document.active_camera_id)

        scene.root = self._build_graph(root)

        scene.textures = dict(self.library.textures)
        scene.materials = dict(self.library.materials)
        scene.material_instances = self.library.instances
        scene.resource_requests = self.library.requests

        self.log.info(
            f"Built scene: {len(scene.meshes())} meshes, {len(scene.lights)} lights, "
            f"{len(scene.cameras)} cameras, {len(scene.resource_requests)} resource requests")
        return scene

    # ------------------------------------------------------------------
    # Graph
    # ------------------------------------------------------------------

    def _enter(self, record) -> None:
        key = id(record)
        if key in self._active:
            raise ConsistencyError(
                f"reference cycle through '{record.id}'", ident=record.id)
        self._active.add(key)

    def _leave(self, record) -> None:
        self._active.discard(id(record))

    def _build_graph(self, root: NodeRecord) -> RenderGroup:
        """Realize the graph below `root` depth-first, pre-order.

        Work items sit on an explicit stack, so nesting depth is limited by
        `settings.max_graph_depth` rather than the interpreter stack. A
        leave marker follows each node/LOD so `_active` always holds the
        records on the current path.
        """
        realized: List[RenderObject] = []
        stack: List[_WorkItem] = [_WorkItem(root, realized.append, _Inherited(), 1)]
        while stack:
            item = stack.pop()
            record = item.record
            if item.leave:
                self._leave(record)
                continue
            if isinstance(record, (NodeRecord, LODRecord)):
                self._check_depth(record, item.depth)
                self._enter(record)
                stack.append(_WorkItem(record, leave=True))
            if isinstance(record, NodeRecord):
                group = self._build_node(record, item.inherited)
                item.attach(group)
                context = _Inherited(group.material, group.cast_shadow, group.receive_shadow)
                for child in reversed(record.children):
                    stack.append(self._child_item(group, child, context, item.depth + 1))
            elif isinstance(record, LODRecord):
                render_lod = RenderLod(name=record.id)
                item.attach(render_lod)
                for level in reversed(record.children):
                    attach = functools.partial(render_lod.add_level, distance=level.min_distance)
                    stack.append(_WorkItem(level.node, attach, item.inherited, item.depth + 1))
            elif isinstance(record, PrimitiveRecord):
                for mesh in self._build_primitive(record, item.inherited):
                    item.attach(mesh)
            else:
                item.attach(self._build_light(record))
        return realized[0]

    def _check_depth(self, record, depth: int) -> None:
        if depth > self.settings.max_graph_depth:
            raise ConsistencyError(
                f"scene graph nesting exceeds {self.settings.max_graph_depth} levels "
                f"at '{record.id}'",
                element="graph", ident=record.id,
            )

    def _child_item(self, parent: RenderGroup, child, inherited: _Inherited,
                    depth: int) -> _WorkItem:
        if isinstance(child, NodeRef):
            return _WorkItem(child.node, parent.add, inherited, depth)
        if isinstance(child, LodRef):
            return _WorkItem(child.lod, parent.add, inherited, depth)
        if isinstance(child, PrimitiveRef):
            return _WorkItem(child.primitive, parent.add, inherited, depth)
        if isinstance(child, LightRef):
            return _WorkItem(child, parent.add, inherited, depth)
        raise ConsistencyError(
            f"in node {parent.name}, unrecognized child {type(child).__name__}",
            ident=parent.name,
        )

    def _build_node(self, node: NodeRecord, inherited: _Inherited) -> RenderGroup:
        group = RenderGroup(name=node.id)
        group.position, group.rotation, group.scale = accumulate_transforms(
            node.transformations)

        if node.material_id is not None:
            group.material = self.library.materials[node.material_id]
        else:
            group.material = inherited.material

        group.cast_shadow = inherited.cast_shadow or node.cast_shadows
        group.receive_shadow = inherited.receive_shadow or node.receive_shadows
        return group

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def _build_primitive(self, primitive: PrimitiveRecord,
                         inherited: _Inherited) -> List[RenderMesh]:
        builder = self._primitive_builders.get(primitive.subtype)
        if builder is None:
            raise ConsistencyError(
                f"unrecognized primitive subtype {primitive.subtype}", element="primitive")

        representation = primitive.representation
        meshes = builder(representation, inherited.material)
        distance = representation.get("distance") or 0.0
        for mesh in meshes:
            mesh.cast_shadow = inherited.cast_shadow
            mesh.receive_shadow = inherited.receive_shadow
            mesh.lod_distance = distance
        return meshes

    def _splits(self, material: MaterialInstance) -> bool:
        return material.two_sided and self.settings.split_two_sided

    def _build_rectangle(self, rep: ElementRecord,
                         inherited: Optional[MaterialInstance]) -> List[RenderMesh]:
        (x1, y1), (x2, y2) = rep["xy1"], rep["xy2"]
        width, height = abs(x2 - x1), abs(y2 - y1)
        center = ((x1 + x2) / 2, (y1 + y2) / 2, 0.0)

        material = self.library.clone_for_use(inherited)
        if material.map is not None:
            # Texture lengths become repeat counts over this rectangle
            s, t = material.map.repeat
            material.map.repeat = (width / s if s else width, height / t if t else height)

        def plane() -> PlaneGeometry:
            return PlaneGeometry(width, height, rep["parts_x"], rep["parts_y"])

        if not self._splits(material):
            return [RenderMesh(name="rectangle", position=center, geometry=plane(),
                               material=self.library.register(material))]

        front, back = self.library.split_sides(material)
        back_position = (center[0], center[1], center[2] - self.settings.back_face_offset)
        return [
            RenderMesh(name="rectangle_front", position=center, geometry=plane(), material=front),
            RenderMesh(name="rectangle_back", position=back_position, geometry=plane(), material=back),
        ]

    def _build_box(self, rep: ElementRecord,
                   inherited: Optional[MaterialInstance]) -> List[RenderMesh]:
        (x1, y1, z1), (x2, y2, z2) = rep["xyz1"], rep["xyz2"]
        geometry = BoxGeometry(
            abs(x2 - x1), abs(y2 - y1), abs(z2 - z1),
            rep["parts_x"], rep["parts_y"], rep["parts_z"],
        )
        center = ((x1 + x2) / 2, (y1 + y2) / 2, (z1 + z2) / 2)
        return [RenderMesh(name="box", position=center, geometry=geometry,
                           material=self.library.use(inherited))]

    def _build_cylinder(self, rep: ElementRecord,
                        inherited: Optional[MaterialInstance]) -> List[RenderMesh]:
        geometry = CylinderGeometry(
            radius_top=rep["top"],
            radius_bottom=rep["base"],
            height=rep["height"],
            radial_segments=rep["slices"],
            height_segments=rep["stacks"],
            open_ended=not rep["capsclose"],
            theta_start=rep["thetastart"],
            theta_length=rep["thetalength"],
        )
        material = self.library.use(inherited)
        if material.two_sided:
            material.shadow_side = Side.FRONT
        return [RenderMesh(name="cylinder", geometry=geometry, material=material)]

    def _build_sphere(self, rep: ElementRecord,
                      inherited: Optional[MaterialInstance]) -> List[RenderMesh]:
        geometry = SphereGeometry(
            radius=rep["radius"],
            width_segments=rep["slices"],
            height_segments=rep["stacks"],
            phi_start=rep["phistart"],
            phi_length=rep["philength"],
            theta_start=rep["thetastart"],
            theta_length=rep["thetalength"],
        )
        material = self.library.use(inherited)
        if material.two_sided:
            material.shadow_side = Side.BACK
        return [RenderMesh(name="sphere", geometry=geometry, material=material)]

    def _build_triangle(self, rep: ElementRecord,
                        inherited: Optional[MaterialInstance]) -> List[RenderMesh]:
        geometry = triangle_geometry(rep["xyz1"], rep["xyz2"], rep["xyz3"])
        material = self.library.use(inherited)
        if material.two_sided:
            material.shadow_side = Side.BACK
        return [RenderMesh(name="triangle", geometry=geometry, material=material)]

    def _build_polygon(self, rep: ElementRecord,
                       inherited: Optional[MaterialInstance]) -> List[RenderMesh]:
        geometry = polygon_geometry(
            rep["radius"], rep["stacks"], rep["slices"], rep["color_c"], rep["color_p"])
        material = self.library.clone_for_use(inherited)
        material.vertex_colors = True

        if not self._splits(material):
            return [RenderMesh(name="polygon", geometry=geometry,
                               material=self.library.register(material))]

        front, back = self.library.split_sides(material)
        return [
            RenderMesh(name="polygon_front", geometry=geometry, material=front),
            RenderMesh(name="polygon_back", geometry=geometry, material=back),
        ]

    def _build_nurbs(self, rep: ElementRecord,
                     inherited: Optional[MaterialInstance]) -> List[RenderMesh]:
        points = [(cp["xx"], cp["yy"], cp["zz"]) for cp in rep["controlpoints"]]
        geometry = nurbs_geometry(
            rep["degree_u"], rep["degree_v"], points, rep["parts_u"], rep["parts_v"])
        material = self.library.clone_for_use(inherited)

        if not self._splits(material):
            return [RenderMesh(name="nurbs", geometry=geometry,
                               material=self.library.register(material))]

        front, back = self.library.split_sides(material)
        fs, bs = self.settings.nurbs_front_scale, self.settings.nurbs_back_scale
        return [
            RenderMesh(name="nurbs_front", geometry=geometry, material=front, scale=(fs, fs, fs)),
            RenderMesh(name="nurbs_back", geometry=geometry, material=back, scale=(bs, bs, bs)),
        ]

    def _build_model(self, rep: ElementRecord,
                     inherited: Optional[MaterialInstance]) -> List[RenderMesh]:
        request = model_request(rep["filepath"], self.settings)
        self.library.requests.append(request)
        geometry = ModelGeometry(path=request.path, request=request)
        return [RenderMesh(name="model3d", geometry=geometry,
                           material=self.library.use(inherited))]

    # ------------------------------------------------------------------
    # Lights
    # ------------------------------------------------------------------

    def _build_light(self, ref: LightRef) -> RenderLight:
        record = ref.light
        kind = ref.kind
        light = RenderLight(
            name=record.id,
            kind=kind,
            color=record["color"],
            intensity=record["intensity"],
            position=record["position"],
            visible=record["enabled"],
            cast_shadow=record["castshadow"],
            shadow_map_size=record["shadowmapsize"],
            shadow_far=record["shadowfar"],
        )

        if kind is LightKind.POINT:
            light.distance = record["distance"]
            light.decay = record["decay"]
        elif kind is LightKind.SPOT:
            light.distance = record["distance"]
            light.decay = record["decay"]
            light.angle = record["angle"]
            light.penumbra = record["penumbra"]
            light.target = record["target"]
        elif kind is LightKind.DIRECTIONAL:
            light.shadow_frustum = (
                record["shadowleft"], record["shadowright"],
                record["shadowbottom"], record["shadowtop"],
            )
        else:
            raise ConsistencyError(f"unrecognized light kind {kind}", ident=record.id)

        helper = DebugHelper(light=light, size=self.settings.light_helper_size)
        light.helper = helper
        self.scene.lights.append(light)
        self.scene.helpers.append(helper)
        self.log.debug(f"Light '{light.name}': {kind.value}")
        return light


def build_scene_hierarchy(
    document: SceneDocument,
    settings: Optional[SceneSettings] = None,
    log: Optional[SceneLogger] = None,
) -> RealizedScene:
    """Realize a loaded document into a render hierarchy.

    Resource paths resolve against `settings.scene_dir`, falling back to
    the directory the document was loaded from.
    """
    settings = settings or SceneSettings()
    if not settings.scene_dir and document.scene_dir:
        settings = dataclasses.replace(settings, scene_dir=document.scene_dir)
    log = log or document.log
    return HierarchyBuilder(document, settings, log).build()
