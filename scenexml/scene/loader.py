"""Build a SceneDocument from a scene XML element tree.

Sections are read in a fixed order: globals, skybox, fog, textures,
materials, cameras and finally the node graph. Nodes and LODs may be
referenced before they are declared; a placeholder record is created on
the first reference and populated in place by the declaration, so every
reference observes the same record.
"""

from __future__ import annotations

import os
from typing import List, Optional
from xml.etree.ElementTree import Element

from ..core.errors import CardinalityError, ConsistencyError
from ..core.logging import SceneLogger
from ..core.types import SceneSettings
from ..data.descriptors import (
    CAMERA_IDS,
    LIGHT_IDS,
    PRIMITIVE_IDS,
    SECTION_IDS,
    TRANSFORM_IDS,
)
from ..data.scene_data import (
    ElementRecord,
    LightRef,
    LodLevel,
    LodRef,
    NodeRecord,
    NodeRef,
    PrimitiveRecord,
    PrimitiveRef,
    PrimitiveSubtype,
    SceneDocument,
    TransformKind,
    TransformOp,
    find_cycle,
)
from ..formats.attributes import check_unknown_attributes, decode_element
from ..formats.validator import check_instances, check_unknown_elements, get_and_check
from ..formats.xml_utils import child_elements, describe, read_xml_file, read_xml_string

_TEXTURE_REF_ATTRIBUTES = ("textureref", "bumpref", "specularref")


class SceneLoader:
    """Reads one document into a fresh SceneDocument per call."""

    def __init__(self, settings: Optional[SceneSettings] = None,
                 log: Optional[SceneLogger] = None):
        self.settings = settings or SceneSettings()
        self.log = log or SceneLogger(self.settings.max_log_messages)
        self.data: Optional[SceneDocument] = None

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def load_file(self, filepath: str) -> SceneDocument:
        self.log.info(f"------------------ {filepath} file read. begin parsing ------------------")
        document = self.load_element(read_xml_file(filepath))
        document.scene_dir = self.settings.scene_dir or os.path.dirname(os.path.abspath(filepath))
        return document

    def load_string(self, text: str) -> SceneDocument:
        return self.load_element(read_xml_string(text))

    def load_element(self, root: Element) -> SceneDocument:
        """Parse an element tree. Any failure raises and no document is returned."""
        self.data = SceneDocument(self.log)
        self.data.scene_dir = self.settings.scene_dir

        check_unknown_elements(root, SECTION_IDS)
        check_unknown_attributes(root, ())

        self._load_globals(root)
        self._load_skybox(root)
        self._load_fog(root)
        self._load_textures(root)
        self._load_materials(root)
        self._load_cameras(root)
        self._load_graph(root)

        self._consolidate()
        return self.data

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _load_globals(self, root: Element) -> None:
        elem = get_and_check(root, "globals")
        self.data.set_options(decode_element(elem, "globals"))

    def _load_skybox(self, root: Element) -> None:
        elem = get_and_check(root, "skybox")
        self.data.set_skybox(decode_element(elem, "skybox"))

    def _load_fog(self, root: Element) -> None:
        elem = get_and_check(root, "fog", 0, 1)
        if elem is not None:
            self.data.set_fog(decode_element(elem, "fog"))

    def _load_textures(self, root: Element) -> None:
        elem = get_and_check(root, "textures")
        self._load_list(elem, "texture", self.data.add_texture)

    def _load_materials(self, root: Element) -> None:
        elem = get_and_check(root, "materials")
        self._load_list(elem, "material", self.data.add_material)

    def _load_list(self, section: Element, tag: str, add) -> None:
        check_unknown_elements(section, (tag,))
        check_unknown_attributes(section, ())
        for child in child_elements(section, tag):
            add(decode_element(child, tag))

    def _load_cameras(self, root: Element) -> None:
        elem = get_and_check(root, "cameras")
        check_unknown_elements(elem, CAMERA_IDS)

        attrs = decode_element(elem, "cameras")
        self.data.active_camera_id = attrs["initial"]

        cameras = [child for child in elem if child.tag in CAMERA_IDS]
        if not cameras:
            raise CardinalityError(
                "at least one camera (ortho/perspective) is required",
                element="cameras",
            )
        for child in cameras:
            self.data.add_camera(decode_element(child, child.tag))

    def _load_graph(self, root: Element) -> None:
        graph = get_and_check(root, "graph")
        check_unknown_elements(graph, ("node", "lod"))

        attrs = decode_element(graph, "graph")
        self.data.root_id = attrs["rootid"]

        node_elements = child_elements(graph, "node")
        check_instances(node_elements, "node", 1, None, graph)

        self.log.info(f"loading {len(node_elements)} nodes")
        for node_element in node_elements:
            self._load_node(node_element)

        # LODs only after every node, so their node references see declarations
        for lod_element in child_elements(graph, "lod"):
            self._load_lod(lod_element)

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def _load_node(self, elem: Element) -> NodeRecord:
        attrs = decode_element(elem, "node")
        node = self.data.declare_node(attrs["id"])

        check_unknown_elements(elem, ("transforms", "materialref", "children"))

        node.cast_shadows = attrs["castshadows"]
        node.receive_shadows = attrs["receiveshadows"]

        transforms = get_and_check(elem, "transforms", 0, 1)
        if transforms is not None:
            self._load_transforms(node, transforms)

        material_refs = child_elements(elem, "materialref")
        check_instances(material_refs, "materialref", 0, 1, elem)
        if material_refs:
            node.material_ids.append(decode_element(material_refs[0], "materialref")["id"])

        children = get_and_check(elem, "children")
        self._load_children(node, children)

        node.loaded = True
        self.log.debug(f"added node {node.id}")
        return node

    def _load_transforms(self, node: NodeRecord, elem: Element) -> None:
        check_unknown_attributes(elem, ())
        for transform in elem:
            if transform.tag not in TRANSFORM_IDS:
                raise ConsistencyError(
                    f"in node {node.id}, unrecognized transformation {transform.tag}.",
                    element=transform.tag, ident=node.id,
                )
            record = decode_element(transform, transform.tag)
            node.transformations.append(
                TransformOp(TransformKind(transform.tag), record["value3"]))

    def _load_children(self, node: NodeRecord, elem: Element) -> None:
        check_unknown_attributes(elem, ())
        for child in elem:
            tag = child.tag
            if tag in LIGHT_IDS:
                light = decode_element(child, tag)
                self.data.add_light(light)
                self.data.add_child_to_node(node, LightRef(light))
            elif tag == "primitive":
                primitive = self._load_primitive(child)
                self.data.add_child_to_node(node, PrimitiveRef(primitive))
            elif tag == "noderef":
                ref_id = decode_element(child, "noderef")["id"]
                # does not exist yet: a placeholder is created and populated later
                self.data.add_child_to_node(node, NodeRef(self.data.get_or_create_node(ref_id)))
            elif tag == "lodref":
                ref_id = decode_element(child, "lodref")["id"]
                self.data.add_child_to_node(node, LodRef(self.data.get_or_create_lod(ref_id)))
            else:
                raise ConsistencyError(
                    f"in node {node.id}, unrecognized child type '{tag}'.",
                    element=tag, ident=node.id,
                )

    def _load_primitive(self, elem: Element) -> PrimitiveRecord:
        primitive = self.data.create_empty_primitive()
        check_unknown_attributes(elem, ())
        check_unknown_elements(elem, PRIMITIVE_IDS)

        for child in elem:
            representation = decode_element(child, child.tag)
            if child.tag == PrimitiveSubtype.NURBS.value:
                representation.values["controlpoints"] = self._load_control_points(child, representation)
            else:
                check_unknown_elements(child, ())
            primitive.representations.append(representation)
            if primitive.subtype is None:
                primitive.subtype = PrimitiveSubtype(child.tag)

        if primitive.subtype is None:
            raise ConsistencyError(
                "primitive element has no recognized primitive instances",
                element="primitive",
            )
        primitive.loaded = True
        return primitive

    def _load_control_points(self, elem: Element, nurbs: ElementRecord) -> List[ElementRecord]:
        check_unknown_elements(elem, ("controlpoint",))
        points = [decode_element(child, "controlpoint") for child in elem]
        expected = (nurbs["degree_u"] + 1) * (nurbs["degree_v"] + 1)
        if len(points) != expected:
            raise ConsistencyError(
                f"{describe(elem)}: degrees {nurbs['degree_u']}x{nurbs['degree_v']} "
                f"need {expected} control points, found {len(points)}",
                element="nurbs",
            )
        return points

    # ------------------------------------------------------------------
    # LODs
    # ------------------------------------------------------------------

    def _load_lod(self, elem: Element) -> None:
        attrs = decode_element(elem, "lod")
        lod = self.data.declare_lod(attrs["id"])

        check_unknown_elements(elem, ("noderef",))
        noderefs = child_elements(elem, "noderef")
        check_instances(noderefs, "noderef", 1, None, elem)

        for noderef in noderefs:
            record = decode_element(noderef, "lodnoderef")
            node = self.data.get_or_create_node(record["id"])
            lod.children.append(LodLevel(node=node, min_distance=record["mindist"]))

        lod.loaded = True
        self.log.debug(f"added lod {lod.id}")

    # ------------------------------------------------------------------
    # Consolidation
    # ------------------------------------------------------------------

    def _consolidate(self) -> None:
        data = self.data
        self.log.info("------------------ consolidating data structures ------------------")

        root = data.root
        if root is None or not root.loaded:
            raise ConsistencyError(
                f"scene graph root '{data.root_id}' is not a declared node",
                element="graph", ident=data.root_id,
            )

        if data.get_camera(data.active_camera_id) is None:
            raise ConsistencyError(
                f"initial camera '{data.active_camera_id}' is not a declared camera",
                element="cameras", ident=data.active_camera_id,
            )

        for node in data.nodes.values():
            for material_id in node.material_ids:
                if data.get_material(material_id) is None:
                    raise ConsistencyError(
                        f"in node {node.id}, material '{material_id}' is not declared",
                        element="materialref", ident=material_id,
                    )

        for material in data.materials.values():
            for name in _TEXTURE_REF_ATTRIBUTES:
                texture_id = material[name]
                if texture_id is not None and data.get_texture(texture_id) is None:
                    raise ConsistencyError(
                        f"in material {material.id}, texture '{texture_id}' is not declared",
                        element="material", attribute=name, ident=material.id,
                    )

        cycle = find_cycle(data)
        if cycle:
            raise ConsistencyError(
                "reference cycle in scene graph: " + " -> ".join(cycle),
                element="graph", ident=cycle[0],
            )

        for label in data.unloaded_ids():
            self.log.warning(f"{label} is referenced but never declared; it stays empty")


def load_scene_file(filepath: str, settings: Optional[SceneSettings] = None,
                    log: Optional[SceneLogger] = None) -> SceneDocument:
    return SceneLoader(settings, log).load_file(filepath)


def load_scene_string(text: str, settings: Optional[SceneSettings] = None,
                      log: Optional[SceneLogger] = None) -> SceneDocument:
    return SceneLoader(settings, log).load_string(text)
