"""Geometry records for the primitive kinds.

Parametric shapes (plane, box, cylinder, sphere) are described by their
parameters only; the renderer tessellates them. Shapes the format defines
vertex by vertex (triangle, polygon, nurbs) are built into a BufferGeometry.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from mathutils import Vector

from ..data.scene_data import RGBA
from ..materials.texture_resolver import ResourceRequest

Vec2 = Tuple[float, float]
Vec3 = Tuple[float, float, float]


@dataclass
class PlaneGeometry:
    width: float = 1.0
    height: float = 1.0
    width_segments: int = 1
    height_segments: int = 1


@dataclass
class BoxGeometry:
    width: float = 1.0
    height: float = 1.0
    depth: float = 1.0
    width_segments: int = 1
    height_segments: int = 1
    depth_segments: int = 1


@dataclass
class CylinderGeometry:
    radius_top: float = 1.0
    radius_bottom: float = 1.0
    height: float = 1.0
    radial_segments: int = 8
    height_segments: int = 1
    open_ended: bool = False
    theta_start: float = 0.0
    theta_length: float = 2 * math.pi


@dataclass
class SphereGeometry:
    radius: float = 1.0
    width_segments: int = 32
    height_segments: int = 16
    phi_start: float = 0.0
    phi_length: float = 2 * math.pi
    theta_start: float = 0.0
    theta_length: float = math.pi


@dataclass
class ModelGeometry:
    """External model file; its content arrives through the request."""
    path: str = ""
    request: Optional[ResourceRequest] = field(default=None, repr=False)


@dataclass
class BufferGeometry:
    """Explicit vertex buffers. Triangles index into the per-vertex lists."""
    positions: List[Vec3] = field(default_factory=list)
    normals: List[Vec3] = field(default_factory=list)
    uvs: List[Vec2] = field(default_factory=list)
    colors: List[Vec3] = field(default_factory=list)
    triangles: List[Tuple[int, int, int]] = field(default_factory=list)

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def triangle_count(self) -> int:
        return len(self.triangles)

    def bounding_radius(self) -> float:
        """Radius of the sphere around the vertex centroid enclosing all vertices."""
        if not self.positions:
            return 0.0
        n = len(self.positions)
        cx = sum(p[0] for p in self.positions) / n
        cy = sum(p[1] for p in self.positions) / n
        cz = sum(p[2] for p in self.positions) / n
        return max(math.sqrt((p[0] - cx) ** 2 + (p[1] - cy) ** 2 + (p[2] - cz) ** 2)
                   for p in self.positions)


Geometry = Union[PlaneGeometry, BoxGeometry, CylinderGeometry, SphereGeometry,
                 ModelGeometry, BufferGeometry]


def face_normal(p1: Vec3, p2: Vec3, p3: Vec3) -> Vec3:
    """Unit normal of a counter-clockwise triangle; +Z when degenerate."""
    normal = (Vector(p2) - Vector(p1)).cross(Vector(p3) - Vector(p1))
    if normal.length < 1e-12:
        return (0.0, 0.0, 1.0)
    normal.normalize()
    return tuple(normal)


def triangle_geometry(p1: Vec3, p2: Vec3, p3: Vec3) -> BufferGeometry:
    normal = face_normal(p1, p2, p3)
    return BufferGeometry(
        positions=[tuple(p1), tuple(p2), tuple(p3)],
        normals=[normal, normal, normal],
        uvs=[(0.0, 0.0), (1.0, 0.0), (0.5, 1.0)],
        triangles=[(0, 1, 2)],
    )


def _lerp_color(start: RGBA, end: RGBA, t: float) -> Vec3:
    return (
        start.r + t * (end.r - start.r),
        start.g + t * (end.g - start.g),
        start.b + t * (end.b - start.b),
    )


def polygon_geometry(radius: float, stacks: int, slices: int,
                     color_c: RGBA, color_p: RGBA) -> BufferGeometry:
    """Flat disc in the XY plane made of concentric rings.

    Vertex 0 is the centre; ring k (0-based) holds `slices` vertices at
    radius (k + 1) * radius / stacks. Colours run from `color_c` at the
    centre to `color_p` on the outer ring.
    """
    stacks = max(1, stacks)
    slices = max(3, slices)
    stack_radius = radius / stacks

    geometry = BufferGeometry(
        positions=[(0.0, 0.0, 0.0)],
        normals=[(0.0, 0.0, 1.0)],
        uvs=[(0.5, 0.5)],
        colors=[color_c.rgb],
    )

    for stack in range(stacks):
        ring_radius = (stack + 1) * stack_radius
        t = (stack + 1) / stacks
        color = _lerp_color(color_c, color_p, t)
        for s in range(slices):
            angle = s / slices * 2 * math.pi
            cos_a, sin_a = math.cos(angle), math.sin(angle)
            geometry.positions.append((ring_radius * cos_a, ring_radius * sin_a, 0.0))
            geometry.normals.append((0.0, 0.0, 1.0))
            geometry.colors.append(color)
            geometry.uvs.append((0.5 + 0.5 * t * cos_a, 0.5 + 0.5 * t * sin_a))

            current = 1 + stack * slices + s
            following = 1 + stack * slices + (s + 1) % slices
            if stack == 0:
                geometry.triangles.append((0, current, following))
            else:
                inner_current = current - slices
                inner_following = following - slices
                geometry.triangles.append((current, following, inner_following))
                geometry.triangles.append((current, inner_following, inner_current))

    return geometry
