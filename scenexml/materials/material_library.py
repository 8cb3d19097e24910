"""Realized textures and materials.

One canonical instance is built per declared texture/material id. The
canonical instances are never handed to meshes directly: every use gets
its own clone, so per-use adjustments (texture repeat, sidedness,
vertex colours) cannot leak between primitives.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..core.logging import SceneLogger
from ..core.types import SceneSettings
from ..data.scene_data import RGBA, ElementRecord, SceneDocument
from .texture_resolver import ResourceRequest, image_request, video_request

_WHITE = RGBA(1.0, 1.0, 1.0, 1.0)
_MIPMAP_LEVELS = 8


class TextureKind(Enum):
    IMAGE = "image"
    VIDEO = "video"
    MIPMAP = "mipmap"


class Side(Enum):
    FRONT = "front"
    BACK = "back"
    DOUBLE = "double"


@dataclass(eq=False)
class TextureInstance:
    """A texture bound to one use. Clones share their resource requests."""
    id: str
    kind: TextureKind = TextureKind.IMAGE
    request: Optional[ResourceRequest] = None
    mipmap_requests: Dict[int, ResourceRequest] = field(default_factory=dict)
    mag_filter: str = "LinearFilter"
    min_filter: str = "LinearMipmapLinearFilter"
    generate_mipmaps: bool = True
    anisotropy: int = 1
    repeat: Tuple[float, float] = (1.0, 1.0)
    wrap: str = "repeat"
    encoding: str = "srgb"

    def clone(self) -> TextureInstance:
        return dataclasses.replace(self, mipmap_requests=dict(self.mipmap_requests))


@dataclass(eq=False)
class MaterialInstance:
    name: str = ""                       # declaring material id; empty for defaults
    lit: bool = True                     # False for the unlit default material
    color: RGBA = _WHITE
    specular: Optional[RGBA] = None
    emissive: Optional[RGBA] = None
    emissive_intensity: float = 1.0
    shininess: float = 30.0
    opacity: float = 1.0
    side: Side = Side.FRONT
    shadow_side: Optional[Side] = None   # None follows `side`
    wireframe: bool = False
    wireframe_default: bool = False
    flat_shading: bool = False
    vertex_colors: bool = False
    map: Optional[TextureInstance] = None
    bump_map: Optional[TextureInstance] = None
    bump_scale: float = 1.0
    specular_map: Optional[TextureInstance] = None

    @property
    def transparent(self) -> bool:
        return self.opacity < 1.0

    @property
    def two_sided(self) -> bool:
        return self.side is Side.DOUBLE

    def textures(self) -> List[TextureInstance]:
        return [t for t in (self.map, self.bump_map, self.specular_map) if t is not None]

    def clone(self) -> MaterialInstance:
        """Copy with independent texture instances."""
        return dataclasses.replace(
            self,
            map=self.map.clone() if self.map else None,
            bump_map=self.bump_map.clone() if self.bump_map else None,
            specular_map=self.specular_map.clone() if self.specular_map else None,
        )


def _declared_mipmaps(record: ElementRecord) -> Dict[int, str]:
    return {
        level: record[f"mipmap{level}"]
        for level in range(_MIPMAP_LEVELS)
        if record.get(f"mipmap{level}") is not None
    }


class MaterialLibrary:
    """Builds the canonical textures/materials of a document and hands out clones."""

    def __init__(self, document: SceneDocument, settings: SceneSettings,
                 log: SceneLogger):
        self.document = document
        self.settings = settings
        self.log = log
        self.textures: Dict[str, TextureInstance] = {}
        self.materials: Dict[str, MaterialInstance] = {}
        self.instances: List[MaterialInstance] = []      # every material given to a mesh
        self.requests: List[ResourceRequest] = []

    def build(self) -> None:
        for texture_id, record in self.document.textures.items():
            self.textures[texture_id] = self._build_texture(record)
        for material_id, record in self.document.materials.items():
            self.materials[material_id] = self._build_material(record)
        self.log.info(
            f"Realized {len(self.textures)} textures, {len(self.materials)} materials")

    # --- Textures ---

    def _request(self, request: ResourceRequest) -> ResourceRequest:
        self.requests.append(request)
        return request

    def _build_texture(self, record: ElementRecord) -> TextureInstance:
        texture = TextureInstance(
            id=record.id,
            mag_filter=record["magFilter"],
            min_filter=record["minFilter"],
            generate_mipmaps=record["mipmaps"],
            anisotropy=record["anisotropy"],
        )
        mipmaps = _declared_mipmaps(record)

        if record["isVideo"]:
            texture.kind = TextureKind.VIDEO
            texture.request = self._request(video_request(record["filepath"], self.settings))
        elif mipmaps:
            texture.kind = TextureKind.MIPMAP
            texture.request = self._request(image_request(record["filepath"], self.settings))
            for level, path in mipmaps.items():
                texture.mipmap_requests[level] = self._request(
                    image_request(path, self.settings, level=level))
            # Explicit levels replace generated ones
            texture.generate_mipmaps = False
        else:
            texture.request = self._request(image_request(record["filepath"], self.settings))

        self.log.debug(f"texture {texture.id}: {texture.kind.value}")
        return texture

    def texture_use(self, texture_id: str, repeat: Tuple[float, float]) -> TextureInstance:
        texture = self.textures[texture_id].clone()
        texture.repeat = repeat
        return texture

    # --- Materials ---

    def _build_material(self, record: ElementRecord) -> MaterialInstance:
        color = record["color"]
        repeat = (record["texlength_s"], record["texlength_t"])

        material = MaterialInstance(
            name=record.id,
            color=color,
            specular=record["specular"],
            emissive=record["emissive"],
            shininess=record["shininess"],
            opacity=color.a,
            side=Side.DOUBLE if record["twosided"] else Side.FRONT,
            wireframe=record["wireframe"],
            wireframe_default=record["wireframe"],
            flat_shading=record["shading"] == "flat",
            lit=record["shading"] != "none",
            bump_scale=record["bumpscale"],
        )
        if record["textureref"] is not None:
            material.map = self.texture_use(record["textureref"], repeat)
        if record["bumpref"] is not None:
            material.bump_map = self.texture_use(record["bumpref"], repeat)
        if record["specularref"] is not None:
            material.specular_map = self.texture_use(record["specularref"], repeat)
        return material

    def clone_for_use(self, material: Optional[MaterialInstance]) -> MaterialInstance:
        """Unregistered clone of `material`, or a fresh default when there is none."""
        if material is None:
            return MaterialInstance(lit=False, side=Side.FRONT, shadow_side=Side.FRONT)
        return material.clone()

    def register(self, material: MaterialInstance) -> MaterialInstance:
        self.instances.append(material)
        return material

    def use(self, material: Optional[MaterialInstance]) -> MaterialInstance:
        return self.register(self.clone_for_use(material))

    def split_sides(self, material: MaterialInstance) -> Tuple[MaterialInstance, MaterialInstance]:
        """Front and back single-sided clones of a double-sided material."""
        front = self.register(material.clone())
        front.side = Side.FRONT
        back = self.register(material.clone())
        back.side = Side.BACK
        return front, back
