"""NURBS surface evaluation and sampling."""

from __future__ import annotations

from typing import List, Sequence

from mathutils import Vector

from .geometry import BufferGeometry, Vec3

_EPS = 1e-5


def clamped_knots(degree: int, count: int) -> List[float]:
    """Clamped uniform knot vector on [0, 1] for `count` control points."""
    interior = count - degree - 1
    knots = [0.0] * (degree + 1)
    knots += [i / (interior + 1) for i in range(1, interior + 1)]
    knots += [1.0] * (degree + 1)
    return knots


def find_span(degree: int, u: float, knots: Sequence[float]) -> int:
    n = len(knots) - degree - 2  # index of the last control point
    if u >= knots[n + 1]:
        return n
    if u <= knots[degree]:
        return degree

    low, high = degree, n + 1
    mid = (low + high) // 2
    while u < knots[mid] or u >= knots[mid + 1]:
        if u < knots[mid]:
            high = mid
        else:
            low = mid
        mid = (low + high) // 2
    return mid


def basis_functions(span: int, u: float, degree: int, knots: Sequence[float]) -> List[float]:
    """Non-zero B-spline basis values N[span-degree .. span] (Cox-de Boor)."""
    values = [1.0] + [0.0] * degree
    left = [0.0] * (degree + 1)
    right = [0.0] * (degree + 1)
    for j in range(1, degree + 1):
        left[j] = u - knots[span + 1 - j]
        right[j] = knots[span + j] - u
        saved = 0.0
        for r in range(j):
            temp = values[r] / (right[r + 1] + left[j - r])
            values[r] = saved + right[r + 1] * temp
            saved = left[j - r] * temp
        values[j] = saved
    return values


class NurbsSurface:
    """Surface over a (degree_u + 1) x (degree_v + 1) grid of unit-weight points.

    Control points are given row-major: row index follows u, column index v.
    """

    def __init__(self, degree_u: int, degree_v: int, control_points: Sequence[Vec3]):
        self.degree_u = degree_u
        self.degree_v = degree_v
        rows, cols = degree_u + 1, degree_v + 1
        self.knots_u = clamped_knots(degree_u, rows)
        self.knots_v = clamped_knots(degree_v, cols)
        self.grid = [
            [Vector((*control_points[row * cols + col], 1.0)) for col in range(cols)]
            for row in range(rows)
        ]

    def point(self, u: float, v: float) -> Vector:
        u = self.knots_u[0] + u * (self.knots_u[-1] - self.knots_u[0])
        v = self.knots_v[0] + v * (self.knots_v[-1] - self.knots_v[0])

        span_u = find_span(self.degree_u, u, self.knots_u)
        span_v = find_span(self.degree_v, v, self.knots_v)
        basis_u = basis_functions(span_u, u, self.degree_u, self.knots_u)
        basis_v = basis_functions(span_v, v, self.degree_v, self.knots_v)

        result = Vector((0.0, 0.0, 0.0, 0.0))
        for m in range(self.degree_v + 1):
            column = Vector((0.0, 0.0, 0.0, 0.0))
            for k in range(self.degree_u + 1):
                column += self.grid[span_u - self.degree_u + k][span_v - self.degree_v + m] * basis_u[k]
            result += column * basis_v[m]
        return Vector(result[:3]) / result[3]

    def normal(self, u: float, v: float) -> Vector:
        p = self.point(u, v)
        if u - _EPS >= 0:
            du = p - self.point(u - _EPS, v)
        else:
            du = self.point(u + _EPS, v) - p
        if v - _EPS >= 0:
            dv = p - self.point(u, v - _EPS)
        else:
            dv = self.point(u, v + _EPS) - p
        n = du.cross(dv)
        if n.length < 1e-12:
            return Vector((0.0, 0.0, 1.0))
        n.normalize()
        return n


def nurbs_geometry(degree_u: int, degree_v: int, control_points: Sequence[Vec3],
                   parts_u: int, parts_v: int) -> BufferGeometry:
    """Sample the surface on a (parts_u + 1) x (parts_v + 1) vertex grid."""
    surface = NurbsSurface(degree_u, degree_v, control_points)
    slices, stacks = max(1, parts_u), max(1, parts_v)
    geometry = BufferGeometry()

    for i in range(stacks + 1):
        v = i / stacks
        for j in range(slices + 1):
            u = j / slices
            geometry.positions.append(tuple(surface.point(u, v)))
            geometry.normals.append(tuple(surface.normal(u, v)))
            geometry.uvs.append((u, v))

    row = slices + 1
    for i in range(stacks):
        for j in range(slices):
            a = i * row + j
            b = (i + 1) * row + j
            c = (i + 1) * row + j + 1
            d = i * row + j + 1
            geometry.triangles.append((a, b, d))
            geometry.triangles.append((b, c, d))

    return geometry
