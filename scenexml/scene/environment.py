"""Ambient light, background, fog and skybox."""

from __future__ import annotations

from typing import List

from ..core.logging import SceneLogger
from ..core.types import SceneSettings
from ..data.render_scene import RenderEnvironment, RenderFog, RenderMesh
from ..data.scene_data import ElementRecord, SceneDocument
from ..materials.material_library import MaterialInstance, MaterialLibrary, Side, TextureInstance
from ..materials.texture_resolver import image_request
from ..mesh.geometry import BoxGeometry

# Face order of the skybox box geometry
SKYBOX_FACES = ("right", "left", "up", "down", "front", "back")


def _skybox_faces(record: ElementRecord, library: MaterialLibrary,
                  settings: SceneSettings) -> List[MaterialInstance]:
    faces = []
    for face in SKYBOX_FACES:
        request = image_request(record[face], settings, face=face)
        library.requests.append(request)
        texture = TextureInstance(id=f"skybox_{face}", request=request)
        faces.append(MaterialInstance(
            name=f"skybox_{face}",
            lit=False,
            side=Side.BACK,
            emissive=record["emissive"],
            emissive_intensity=record["intensity"],
            map=texture,
        ))
    return faces


def build_environment(document: SceneDocument, library: MaterialLibrary,
                      settings: SceneSettings, log: SceneLogger) -> RenderEnvironment:
    options = document.options
    environment = RenderEnvironment(
        background=options["background"] if options else None,
        ambient=options["ambient"] if options else None,
    )

    if document.fog is not None:
        fog = document.fog
        environment.fog = RenderFog(fog["color"], fog["near"], fog["far"])

    skybox = document.skybox
    if skybox is not None:
        width, height, depth = skybox["size"]
        environment.skybox = RenderMesh(
            name="skybox",
            position=skybox["center"],
            geometry=BoxGeometry(width, height, depth),
        )
        environment.skybox_faces = _skybox_faces(skybox, library, settings)
        log.info(f"Skybox {width:g}x{height:g}x{depth:g}")

    return environment
