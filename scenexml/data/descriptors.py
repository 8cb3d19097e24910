"""Attribute descriptors for every element type of the scene format.

Each element type maps to an ordered tuple of AttributeSpec. The table is
built once at import and never mutated; `lookup` is the only accessor the
loader uses.
"""

import math
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, FrozenSet, Mapping, Optional, Tuple

from ..core.errors import ConsistencyError


class ScalarKind(Enum):
    """Value kinds an attribute can decode to."""
    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    VECTOR2 = "vector2"
    VECTOR3 = "vector3"
    RGBA = "rgba"
    RECTANGLE2D = "rectangle2D"
    ITEM = "item"


@dataclass(frozen=True)
class AttributeSpec:
    """Schema of a single attribute."""
    name: str
    kind: ScalarKind
    required: bool = True
    default: Any = None
    choices: Optional[FrozenSet[str]] = None


def _opt(name: str, kind: ScalarKind, default: Any = None,
         choices: Optional[Tuple[str, ...]] = None) -> AttributeSpec:
    return AttributeSpec(
        name, kind, required=False, default=default,
        choices=frozenset(choices) if choices else None,
    )


S = ScalarKind
_DISTANCE = _opt("distance", S.FLOAT, 0.0)  # LOD-by-primitive threshold

_SHADING_CHOICES = ("none", "flat", "smooth")


_TABLE = {
    # --- Sections ---
    "globals": (
        AttributeSpec("background", S.RGBA),
        AttributeSpec("ambient", S.RGBA),
    ),
    "fog": (
        AttributeSpec("color", S.RGBA),
        AttributeSpec("near", S.FLOAT),
        AttributeSpec("far", S.FLOAT),
    ),
    "skybox": (
        AttributeSpec("size", S.VECTOR3),
        AttributeSpec("center", S.VECTOR3),
        AttributeSpec("emissive", S.RGBA),
        AttributeSpec("intensity", S.FLOAT),
        AttributeSpec("up", S.STRING),
        AttributeSpec("down", S.STRING),
        AttributeSpec("left", S.STRING),
        AttributeSpec("right", S.STRING),
        AttributeSpec("front", S.STRING),
        AttributeSpec("back", S.STRING),
    ),
    "texture": (
        AttributeSpec("id", S.STRING),
        AttributeSpec("filepath", S.STRING),
        _opt("isVideo", S.BOOLEAN, False),
        _opt("magFilter", S.STRING, "LinearFilter"),
        _opt("minFilter", S.STRING, "LinearMipmapLinearFilter"),
        _opt("mipmaps", S.BOOLEAN, True),
        _opt("anisotropy", S.INTEGER, 1),
    ) + tuple(_opt(f"mipmap{level}", S.STRING) for level in range(8)),
    "material": (
        AttributeSpec("id", S.STRING),
        AttributeSpec("color", S.RGBA),
        AttributeSpec("specular", S.RGBA),
        AttributeSpec("emissive", S.RGBA),
        AttributeSpec("shininess", S.FLOAT),
        _opt("wireframe", S.BOOLEAN, False),
        _opt("shading", S.ITEM, "smooth", choices=_SHADING_CHOICES),
        _opt("textureref", S.STRING),
        _opt("texlength_s", S.FLOAT, 1.0),
        _opt("texlength_t", S.FLOAT, 1.0),
        _opt("twosided", S.BOOLEAN, False),
        _opt("bumpref", S.STRING),
        _opt("bumpscale", S.FLOAT, 1.0),
        _opt("specularref", S.STRING),
    ),

    # --- Cameras ---
    "orthogonal": (
        AttributeSpec("id", S.STRING),
        AttributeSpec("near", S.FLOAT),
        AttributeSpec("far", S.FLOAT),
        AttributeSpec("location", S.VECTOR3),
        AttributeSpec("target", S.VECTOR3),
        AttributeSpec("left", S.FLOAT),
        AttributeSpec("right", S.FLOAT),
        AttributeSpec("bottom", S.FLOAT),
        AttributeSpec("top", S.FLOAT),
    ),
    "perspective": (
        AttributeSpec("id", S.STRING),
        AttributeSpec("angle", S.FLOAT),
        AttributeSpec("near", S.FLOAT),
        AttributeSpec("far", S.FLOAT),
        AttributeSpec("location", S.VECTOR3),
        AttributeSpec("target", S.VECTOR3),
    ),

    # --- Primitives ---
    "cylinder": (
        AttributeSpec("base", S.FLOAT),
        AttributeSpec("top", S.FLOAT),
        AttributeSpec("height", S.FLOAT),
        AttributeSpec("slices", S.INTEGER),
        AttributeSpec("stacks", S.INTEGER),
        _opt("capsclose", S.BOOLEAN, False),
        _opt("thetastart", S.FLOAT, 0.0),
        _opt("thetalength", S.FLOAT, 2 * math.pi),
        _DISTANCE,
    ),
    "rectangle": (
        AttributeSpec("xy1", S.VECTOR2),
        AttributeSpec("xy2", S.VECTOR2),
        _opt("parts_x", S.INTEGER, 1),
        _opt("parts_y", S.INTEGER, 1),
        _DISTANCE,
    ),
    "triangle": (
        AttributeSpec("xyz1", S.VECTOR3),
        AttributeSpec("xyz2", S.VECTOR3),
        AttributeSpec("xyz3", S.VECTOR3),
        _DISTANCE,
    ),
    "model3d": (
        AttributeSpec("filepath", S.STRING),
        _DISTANCE,
    ),
    "sphere": (
        AttributeSpec("radius", S.FLOAT),
        AttributeSpec("slices", S.INTEGER),
        AttributeSpec("stacks", S.INTEGER),
        _opt("thetastart", S.FLOAT, 0.0),
        _opt("thetalength", S.FLOAT, math.pi),
        _opt("phistart", S.FLOAT, 0.0),
        _opt("philength", S.FLOAT, 2 * math.pi),
        _DISTANCE,
    ),
    "box": (
        AttributeSpec("xyz1", S.VECTOR3),
        AttributeSpec("xyz2", S.VECTOR3),
        _opt("parts_x", S.INTEGER, 1),
        _opt("parts_y", S.INTEGER, 1),
        _opt("parts_z", S.INTEGER, 1),
        _DISTANCE,
    ),
    "nurbs": (
        AttributeSpec("degree_u", S.INTEGER),
        AttributeSpec("degree_v", S.INTEGER),
        AttributeSpec("parts_u", S.INTEGER),
        AttributeSpec("parts_v", S.INTEGER),
        _DISTANCE,
    ),
    "controlpoint": (
        AttributeSpec("xx", S.FLOAT),
        AttributeSpec("yy", S.FLOAT),
        AttributeSpec("zz", S.FLOAT),
    ),
    "polygon": (
        AttributeSpec("radius", S.FLOAT),
        AttributeSpec("stacks", S.INTEGER),
        AttributeSpec("slices", S.INTEGER),
        AttributeSpec("color_c", S.RGBA),
        AttributeSpec("color_p", S.RGBA),
    ),

    # --- Lights ---
    "spotlight": (
        AttributeSpec("id", S.STRING),
        AttributeSpec("color", S.RGBA),
        AttributeSpec("position", S.VECTOR3),
        AttributeSpec("target", S.VECTOR3),
        AttributeSpec("angle", S.FLOAT),
        _opt("enabled", S.BOOLEAN, True),
        _opt("intensity", S.FLOAT, 1.0),
        _opt("distance", S.FLOAT, 1000.0),
        _opt("decay", S.FLOAT, 2.0),
        _opt("penumbra", S.FLOAT, 1.0),
        _opt("castshadow", S.BOOLEAN, False),
        _opt("shadowfar", S.FLOAT, 500.0),
        _opt("shadowmapsize", S.INTEGER, 512),
    ),
    "pointlight": (
        AttributeSpec("id", S.STRING),
        AttributeSpec("color", S.RGBA),
        AttributeSpec("position", S.VECTOR3),
        _opt("enabled", S.BOOLEAN, True),
        _opt("intensity", S.FLOAT, 1.0),
        _opt("distance", S.FLOAT, 1000.0),
        _opt("decay", S.FLOAT, 2.0),
        _opt("castshadow", S.BOOLEAN, False),
        _opt("shadowfar", S.FLOAT, 500.0),
        _opt("shadowmapsize", S.INTEGER, 512),
    ),
    "directionallight": (
        AttributeSpec("id", S.STRING),
        AttributeSpec("color", S.RGBA),
        AttributeSpec("position", S.VECTOR3),
        _opt("enabled", S.BOOLEAN, True),
        _opt("intensity", S.FLOAT, 1.0),
        _opt("castshadow", S.BOOLEAN, False),
        _opt("shadowleft", S.FLOAT, -5.0),
        _opt("shadowright", S.FLOAT, 5.0),
        _opt("shadowbottom", S.FLOAT, -5.0),
        _opt("shadowtop", S.FLOAT, 5.0),
        _opt("shadowfar", S.FLOAT, 500.0),
        _opt("shadowmapsize", S.INTEGER, 512),
    ),

    # --- Graph structure ---
    "cameras": (AttributeSpec("initial", S.STRING),),
    "graph": (AttributeSpec("rootid", S.STRING),),
    "node": (
        AttributeSpec("id", S.STRING),
        _opt("castshadows", S.BOOLEAN, False),
        _opt("receiveshadows", S.BOOLEAN, False),
    ),
    "materialref": (AttributeSpec("id", S.STRING),),
    "noderef": (AttributeSpec("id", S.STRING),),
    "lodref": (AttributeSpec("id", S.STRING),),
    "lod": (AttributeSpec("id", S.STRING),),
    "lodnoderef": (
        AttributeSpec("id", S.STRING),
        AttributeSpec("mindist", S.FLOAT),
    ),
    "translate": (AttributeSpec("value3", S.VECTOR3),),
    "rotate": (AttributeSpec("value3", S.VECTOR3),),
    "scale": (AttributeSpec("value3", S.VECTOR3),),
}

DESCRIPTORS: Mapping[str, Tuple[AttributeSpec, ...]] = MappingProxyType(_TABLE)

# Element names allowed directly inside the document root
SECTION_IDS = ("globals", "fog", "skybox", "textures", "materials", "cameras", "graph")

CAMERA_IDS = ("orthogonal", "perspective")
LIGHT_IDS = ("spotlight", "pointlight", "directionallight")
PRIMITIVE_IDS = ("cylinder", "rectangle", "triangle", "sphere", "nurbs",
                 "box", "model3d", "polygon")
TRANSFORM_IDS = ("translate", "rotate", "scale")


def lookup(type_name: str) -> Tuple[AttributeSpec, ...]:
    """Return the ordered attribute specs for an element type."""
    try:
        return DESCRIPTORS[type_name]
    except KeyError:
        raise ConsistencyError(
            f"inconsistency: no descriptor for element type '{type_name}'",
            element=type_name,
        ) from None


def attribute_names(specs: Tuple[AttributeSpec, ...]) -> Tuple[str, ...]:
    return tuple(spec.name for spec in specs)
