import math

import pytest
from mathutils import Vector

from scene_docs import (
    MATERIAL_RED,
    RECTANGLE,
    material,
    minimal_scene,
    node,
    node_chain,
    noderef,
    primitive,
    scene_xml,
    texture,
)
from scenexml.core.errors import ConsistencyError
from scenexml.core.types import SceneSettings
from scenexml.data.render_scene import RenderGroup, RenderLight, RenderLod, RenderMesh
from scenexml.data.scene_data import LightKind, NodeRef, TransformKind, TransformOp
from scenexml.materials.material_library import Side
from scenexml.mesh.geometry import (
    BoxGeometry,
    BufferGeometry,
    CylinderGeometry,
    ModelGeometry,
    PlaneGeometry,
    SphereGeometry,
)
from scenexml.scene.hierarchy import accumulate_transforms, build_scene_hierarchy
from scenexml.scene.loader import load_scene_string


def _build(xml, settings=None):
    doc = load_scene_string(xml)
    return doc, build_scene_hierarchy(doc, settings or SceneSettings())


def test_minimal_scene_has_one_mesh_at_rectangle_midpoint():
    _, scene = _build(minimal_scene())
    meshes = scene.meshes()
    assert len(meshes) == 1
    mesh = meshes[0]
    assert mesh.position[:2] == (0.5, 0.5)
    assert isinstance(mesh.geometry, PlaneGeometry)
    assert (mesh.geometry.width, mesh.geometry.height) == (1.0, 1.0)
    assert scene.root.name == "root"
    assert mesh.parent is scene.root


def test_transform_accumulation_is_order_independent():
    ops = [
        TransformOp(TransformKind.TRANSLATE, (1, 0, 0)),
        TransformOp(TransformKind.SCALE, (2, 2, 2)),
        TransformOp(TransformKind.ROTATE, (0, 0.5, 0)),
        TransformOp(TransformKind.TRANSLATE, (0, 1, 0)),
        TransformOp(TransformKind.SCALE, (1, 3, 1)),
        TransformOp(TransformKind.ROTATE, (0, 0.25, 0)),
    ]
    position, rotation, scale = accumulate_transforms(ops)
    assert position == (1, 1, 0)
    assert rotation == (0, 0.75, 0)
    assert scale == (2, 6, 2)
    assert accumulate_transforms(list(reversed(ops))) == (position, rotation, scale)


def test_node_transforms_are_applied():
    transforms = '<translate value3="1 0 0" /><rotate value3="0 0 1" /><translate value3="0 1 0" />'
    _, scene = _build(scene_xml(node("root", RECTANGLE, transforms=transforms)))
    assert scene.root.position == (1.0, 1.0, 0.0)
    assert scene.root.rotation == (0.0, 0.0, 1.0)


def test_world_matrix_composes_parents():
    transforms = '<translate value3="10 0 0" />'
    graph = node("root", noderef("child"), transforms=transforms) + node("child", RECTANGLE)
    _, scene = _build(scene_xml(graph))
    mesh = scene.meshes()[0]
    x, y, z = mesh.world_position()
    assert (x, y, z) == pytest.approx((10.5, 0.5, 0.0))


def test_shadow_flags_are_ored_down_the_tree():
    graph = (node("root", noderef("child"), castshadows="true")
             + node("child", RECTANGLE, castshadows="false", receiveshadows="true"))
    _, scene = _build(scene_xml(graph))
    child = scene.root.children[0]
    assert child.cast_shadow is True
    assert child.receive_shadow is True
    mesh = child.children[0]
    assert mesh.cast_shadow and mesh.receive_shadow


def test_child_inherits_parent_material_by_reference():
    graph = node("root", noderef("child"), materialref="red") + node("child", RECTANGLE)
    _, scene = _build(scene_xml(graph, materials=MATERIAL_RED))
    child = scene.root.children[0]
    assert child.material is scene.root.material is scene.materials["red"]
    mesh = child.children[0]
    assert mesh.material is not scene.materials["red"]
    assert mesh.material.name == "red"


def test_own_material_overrides_parent():
    graph = (node("root", noderef("child"), materialref="red")
             + node("child", RECTANGLE, materialref="blue"))
    materials = MATERIAL_RED + material("blue")
    _, scene = _build(scene_xml(graph, materials=materials))
    assert scene.meshes()[0].material.name == "blue"


def test_primitive_without_material_gets_default():
    _, scene = _build(minimal_scene())
    mat = scene.meshes()[0].material
    assert mat.name == ""
    assert not mat.lit
    assert mat.side is Side.FRONT and mat.shadow_side is Side.FRONT


def test_two_sided_rectangle_is_split():
    materials = material("m", twosided="true")
    _, scene = _build(scene_xml(node("root", RECTANGLE, materialref="m"), materials=materials))
    front, back = scene.meshes()
    assert front.material.side is Side.FRONT
    assert back.material.side is Side.BACK
    assert front.material is not back.material
    assert front.position == (0.5, 0.5, 0.0)
    assert back.position == pytest.approx((0.5, 0.5, -0.2))
    assert scene.materials["m"].side is Side.DOUBLE


def test_back_rectangle_offset_is_configurable():
    materials = material("m", twosided="true")
    settings = SceneSettings(back_face_offset=0.0)
    _, scene = _build(scene_xml(node("root", RECTANGLE, materialref="m"), materials=materials),
                      settings)
    front, back = scene.meshes()
    assert back.position == front.position


def test_two_sided_split_can_be_disabled():
    materials = material("m", twosided="true")
    settings = SceneSettings(split_two_sided=False)
    _, scene = _build(scene_xml(node("root", RECTANGLE, materialref="m"), materials=materials),
                      settings)
    (mesh,) = scene.meshes()
    assert mesh.material.side is Side.DOUBLE


def test_two_sided_nurbs_front_and_back_scaled():
    points = "".join(f'<controlpoint xx="{x}" yy="{y}" zz="0" />' for x in (0, 1) for y in (0, 1))
    inner = f'<nurbs degree_u="1" degree_v="1" parts_u="2" parts_v="2">{points}</nurbs>'
    materials = material("m", twosided="true")
    _, scene = _build(scene_xml(node("root", primitive(inner), materialref="m"), materials=materials))
    front, back = scene.meshes()
    assert front.scale == pytest.approx((0.98, 0.98, 0.98))
    assert back.scale == pytest.approx((1.015, 1.015, 1.015))
    assert front.geometry is back.geometry
    assert isinstance(front.geometry, BufferGeometry)


def test_two_sided_sphere_and_cylinder_shadow_sides():
    inner = ('<sphere radius="1" slices="8" stacks="8" />')
    cyl = '<cylinder base="1" top="0.5" height="2" slices="8" stacks="1" />'
    children = primitive(inner) + primitive(cyl)
    materials = material("m", twosided="true")
    _, scene = _build(scene_xml(node("root", children, materialref="m"), materials=materials))
    sphere, cylinder = scene.meshes()
    assert sphere.material.side is Side.DOUBLE and sphere.material.shadow_side is Side.BACK
    assert cylinder.material.side is Side.DOUBLE and cylinder.material.shadow_side is Side.FRONT


def test_cylinder_and_sphere_parameters():
    cyl = ('<cylinder base="1" top="0.5" height="2" slices="12" stacks="3" capsclose="true" '
           'thetastart="0.1" thetalength="3" />')
    sph = '<sphere radius="2" slices="10" stacks="6" phistart="0.5" />'
    _, scene = _build(minimal_scene(children=primitive(cyl) + primitive(sph)))
    cylinder, sphere = (m.geometry for m in scene.meshes())
    assert isinstance(cylinder, CylinderGeometry)
    assert (cylinder.radius_bottom, cylinder.radius_top) == (1.0, 0.5)
    assert cylinder.radial_segments == 12 and cylinder.height_segments == 3
    assert cylinder.open_ended is False
    assert cylinder.theta_length == 3.0
    assert isinstance(sphere, SphereGeometry)
    assert (sphere.width_segments, sphere.height_segments) == (10, 6)
    assert sphere.phi_start == 0.5
    assert sphere.theta_length == pytest.approx(math.pi)


def test_box_is_centred_between_corners():
    box = '<box xyz1="0 0 0" xyz2="2 4 6" parts_y="2" />'
    _, scene = _build(minimal_scene(children=primitive(box)))
    (mesh,) = scene.meshes()
    assert isinstance(mesh.geometry, BoxGeometry)
    assert mesh.position == (1.0, 2.0, 3.0)
    assert (mesh.geometry.width, mesh.geometry.height, mesh.geometry.depth) == (2.0, 4.0, 6.0)
    assert mesh.geometry.height_segments == 2


def test_polygon_uses_vertex_colours():
    poly = '<polygon radius="1" stacks="2" slices="6" color_c="1 0 0 1" color_p="0 0 1 1" />'
    _, scene = _build(minimal_scene(children=primitive(poly)))
    (mesh,) = scene.meshes()
    assert mesh.material.vertex_colors
    assert mesh.geometry.vertex_count == 1 + 2 * 6


def test_model3d_requests_its_file(tmp_path):
    _, scene = _build(minimal_scene(children=primitive('<model3d filepath="models/chair.obj" />')),
                      SceneSettings(scene_dir=str(tmp_path)))
    (mesh,) = scene.meshes()
    assert isinstance(mesh.geometry, ModelGeometry)
    assert mesh.geometry.request in scene.resource_requests
    assert mesh.geometry.path == str(tmp_path / "models" / "chair.obj")


def test_rectangle_texture_repeat_from_texlength():
    materials = material("m", textureref="wood", texlength_s="2", texlength_t="0.5")
    rect = primitive('<rectangle xy1="0 0" xy2="4 2" />')
    _, scene = _build(scene_xml(node("root", rect, materialref="m"),
                                textures=texture("wood"), materials=materials))
    (mesh,) = scene.meshes()
    assert mesh.material.map.repeat == (2.0, 4.0)
    assert scene.materials["m"].map.repeat == (2.0, 0.5)


def test_shared_node_is_realized_per_use():
    graph = (node("root", noderef("leaf") + noderef("leaf"))
             + node("leaf", RECTANGLE))
    _, scene = _build(scene_xml(graph))
    leaves = scene.find("leaf")
    assert len(leaves) == 2
    assert leaves[0] is not leaves[1]
    first, second = scene.meshes()
    assert first.material is not second.material


def test_lod_levels_in_declared_order():
    lods = '<lod id="l1"><noderef id="near" mindist="0" /><noderef id="far" mindist="50" /></lod>'
    graph = (node("root", '<lodref id="l1" />', materialref="red")
             + node("near", RECTANGLE) + node("far", RECTANGLE))
    _, scene = _build(scene_xml(graph, materials=MATERIAL_RED, lods=lods))
    lod = scene.root.children[0]
    assert isinstance(lod, RenderLod)
    assert [(lv.distance, lv.object.name) for lv in lod.levels] == [(0.0, "near"), (50.0, "far")]
    assert lod.object_for_distance(10).name == "near"
    assert lod.object_for_distance(75).name == "far"
    assert all(lv.object.material is scene.materials["red"] for lv in lod.levels)


def test_lights_and_helpers():
    lights = ('<pointlight id="p" color="1 1 1 1" position="0 5 0" decay="1" />'
              '<spotlight id="s" color="1 1 0 1" position="0 5 0" target="0 0 0" angle="0.5" enabled="false" />'
              '<directionallight id="d" color="1 1 1 1" position="5 5 5" castshadow="true" shadowleft="-10" />')
    _, scene = _build(minimal_scene(children=lights))
    point, spot, directional = scene.lights
    assert point.kind is LightKind.POINT and point.decay == 1.0
    assert spot.target == (0.0, 0.0, 0.0) and spot.angle == 0.5
    assert spot.visible is False
    assert directional.shadow_frustum == (-10.0, 5.0, -5.0, 5.0)
    assert directional.cast_shadow is True
    assert len(scene.helpers) == 3
    assert not any(h.visible for h in scene.helpers)
    assert point.helper.light is point
    scene.set_helpers_visible(True)
    assert all(h.visible for h in scene.helpers)
    assert all(isinstance(obj, RenderLight) for obj in scene.root.children)


def test_cameras_are_realized():
    cameras = ('<cameras initial="p">'
               '<perspective id="p" angle="45" near="0.1" far="100" location="0 0 10" target="0 0 0" />'
               '<orthogonal id="o" near="2" far="100" location="0 10 0" target="0 0 0" '
               'left="-4" right="4" bottom="-2" top="2" />'
               '</cameras>')
    _, scene = _build(minimal_scene(cameras=cameras), SceneSettings(aspect=2.0))
    assert scene.active_camera.name == "p"
    assert scene.active_camera.fov == 45.0
    ortho = scene.cameras["o"]
    assert (ortho.left, ortho.right, ortho.top, ortho.bottom) == (-4.0, 4.0, 1.0, -1.0)
    assert (ortho.near, ortho.far) == (1.0, 100.0)
    scene.set_active_camera("o")
    assert scene.active_camera_id == "o"
    with pytest.raises(ConsistencyError):
        scene.set_active_camera("missing")


def test_camera_looks_at_target():
    _, scene = _build(minimal_scene())
    camera = scene.active_camera
    forward = camera.quaternion @ Vector((0.0, 0.0, -1.0))
    assert tuple(forward) == pytest.approx((0.0, 0.0, -1.0), abs=1e-6)


def test_environment():
    fog = '<fog color="0.5 0.5 0.5 1" near="1" far="100" />'
    _, scene = _build(minimal_scene(fog=fog))
    env = scene.environment
    assert env.ambient.r == pytest.approx(0.2)
    assert env.fog.far == 100.0
    assert env.skybox.position == (0.0, 10.0, 0.0)
    faces = [m.name for m in env.skybox_faces]
    assert faces == ["skybox_right", "skybox_left", "skybox_up", "skybox_down",
                     "skybox_front", "skybox_back"]
    assert all(m.side is Side.BACK for m in env.skybox_faces)


def test_wireframe_toggle_restores_defaults():
    materials = material("wire", wireframe="true") + material("solid")
    children = primitive('<box xyz1="0 0 0" xyz2="1 1 1" />')
    graph = (node("root", noderef("a") + noderef("b"))
             + node("a", children, materialref="wire")
             + node("b", children, materialref="solid"))
    _, scene = _build(scene_xml(graph, materials=materials))
    wire, solid = scene.meshes()
    assert wire.material.wireframe and not solid.material.wireframe
    scene.set_wireframe(True)
    assert wire.material.wireframe and solid.material.wireframe
    scene.set_wireframe(False)
    assert wire.material.wireframe and not solid.material.wireframe


def test_placeholder_node_realizes_as_empty_group():
    _, scene = _build(scene_xml(node("root", noderef("ghost"))))
    ghost = scene.root.children[0]
    assert isinstance(ghost, RenderGroup)
    assert ghost.children == []


def test_traversal_refuses_cycles():
    doc = load_scene_string(scene_xml(node("root", noderef("a")) + node("a", RECTANGLE)))
    # Introduce a cycle after parsing, bypassing consolidation
    doc.nodes["a"].children.append(NodeRef(doc.nodes["root"]))
    with pytest.raises(ConsistencyError):
        build_scene_hierarchy(doc)


def test_document_is_not_mutated_by_traversal():
    materials = material("m", textureref="wood", twosided="true")
    doc = load_scene_string(scene_xml(node("root", RECTANGLE, materialref="m"),
                                      textures=texture("wood"), materials=materials))
    build_scene_hierarchy(doc)
    scene = build_scene_hierarchy(doc)
    assert doc.materials["m"]["texlength_s"] == 1.0
    assert scene.materials["m"].map.repeat == (1.0, 1.0)
    assert len(scene.meshes()) == 2
    assert isinstance(scene.meshes()[0], RenderMesh)


def test_deep_node_chain_is_realized():
    graph = node_chain(1500, transforms='<translate value3="1 0 0" />')
    _, scene = _build(scene_xml(graph, rootid="n0"))
    (mesh,) = scene.meshes()
    assert len(list(scene.walk())) == 1501
    assert mesh.world_position() == pytest.approx((1500.5, 0.5, 0.0))
    assert mesh.parent.name == "n1499"


def test_graph_depth_limit_names_the_node():
    settings = SceneSettings(max_graph_depth=50)
    with pytest.raises(ConsistencyError) as exc:
        _build(scene_xml(node_chain(80), rootid="n0"), settings)
    assert exc.value.ident == "n50"
    assert "50 levels" in str(exc.value)
