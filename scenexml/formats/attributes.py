"""Descriptor-driven decoding of element attributes into typed values.

One decode rule per ScalarKind; `decode_element` assembles a whole
ElementRecord from an element and its descriptor, applying the
closed-world attribute check and default substitution.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union
from xml.etree.ElementTree import Element

from ..core.errors import ConsistencyError, SchemaError
from ..data.descriptors import AttributeSpec, ScalarKind, attribute_names, lookup
from ..data.scene_data import RGBA, ElementRecord, Rectangle2D
from .xml_utils import (
    describe,
    number_to_str,
    vector2_to_str,
    vector3_to_str,
    vector4_to_str,
)

_TRUE_VALUES = ("1", "true", "t")
_FALSE_VALUES = ("0", "false", "f")
_BOOLEAN_CHOICES = frozenset(_TRUE_VALUES + _FALSE_VALUES)


def _raw(elem: Element, spec: AttributeSpec) -> Optional[str]:
    value = elem.get(spec.name)
    if value is None and spec.required:
        raise SchemaError(
            f"{describe(elem)}: {spec.kind.value} value is missing for "
            f"required attribute '{spec.name}'",
            element=elem.tag, attribute=spec.name, ident=elem.get("id"),
        )
    return value


def _to_float(elem: Element, spec: AttributeSpec, text: str) -> float:
    try:
        return float(text)
    except ValueError:
        raise SchemaError(
            f"{describe(elem)}: '{text}' is not a number in attribute '{spec.name}'",
            element=elem.tag, attribute=spec.name, ident=elem.get("id"),
        ) from None


def _components(elem: Element, spec: AttributeSpec, count: int) -> Optional[Tuple[float, ...]]:
    value = _raw(elem, spec)
    if value is None:
        return None
    parts = value.split()
    if len(parts) != count:
        raise SchemaError(
            f"{describe(elem)}: invalid {len(parts)} number of components for "
            f"a {spec.kind.value} in attribute '{spec.name}', expected {count}",
            element=elem.tag, attribute=spec.name, ident=elem.get("id"),
        )
    return tuple(_to_float(elem, spec, part) for part in parts)


def _check_choice(elem: Element, spec: AttributeSpec, value: str, choices) -> str:
    value = value.lower()
    if value not in choices:
        raise SchemaError(
            f"{describe(elem)}: value '{value}' is not a choice in "
            f"[{', '.join(sorted(choices))}] for attribute '{spec.name}'",
            element=elem.tag, attribute=spec.name, ident=elem.get("id"),
        )
    return value


def decode_string(elem: Element, spec: AttributeSpec) -> Optional[str]:
    return _raw(elem, spec)


def decode_boolean(elem: Element, spec: AttributeSpec) -> Optional[bool]:
    value = _raw(elem, spec)
    if value is None:
        return None
    return _check_choice(elem, spec, value, _BOOLEAN_CHOICES) in _TRUE_VALUES


def decode_integer(elem: Element, spec: AttributeSpec) -> Optional[int]:
    value = _raw(elem, spec)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        pass
    number = _to_float(elem, spec, value)
    if not number.is_integer():
        raise SchemaError(
            f"{describe(elem)}: '{value}' is not an integer in attribute '{spec.name}'",
            element=elem.tag, attribute=spec.name, ident=elem.get("id"),
        )
    return int(number)


def decode_float(elem: Element, spec: AttributeSpec) -> Optional[float]:
    value = _raw(elem, spec)
    if value is None:
        return None
    return _to_float(elem, spec, value)


def decode_vector2(elem: Element, spec: AttributeSpec) -> Optional[Tuple[float, float]]:
    return _components(elem, spec, 2)


def decode_vector3(elem: Element, spec: AttributeSpec) -> Optional[Tuple[float, float, float]]:
    return _components(elem, spec, 3)


def decode_rgba(elem: Element, spec: AttributeSpec) -> Optional[RGBA]:
    values = _components(elem, spec, 4)
    return RGBA(*values) if values is not None else None


def decode_rectangle2d(elem: Element, spec: AttributeSpec) -> Optional[Rectangle2D]:
    values = _components(elem, spec, 4)
    return Rectangle2D(*values) if values is not None else None


def decode_item(elem: Element, spec: AttributeSpec) -> Optional[str]:
    if not spec.choices:
        raise ConsistencyError(
            f"inconsistency: item attribute '{spec.name}' has no choices in its descriptor",
            element=elem.tag, attribute=spec.name,
        )
    value = _raw(elem, spec)
    if value is None:
        return None
    return _check_choice(elem, spec, value, spec.choices)


_DECODERS: Dict[ScalarKind, Callable[[Element, AttributeSpec], Any]] = {
    ScalarKind.STRING: decode_string,
    ScalarKind.BOOLEAN: decode_boolean,
    ScalarKind.INTEGER: decode_integer,
    ScalarKind.FLOAT: decode_float,
    ScalarKind.VECTOR2: decode_vector2,
    ScalarKind.VECTOR3: decode_vector3,
    ScalarKind.RGBA: decode_rgba,
    ScalarKind.RECTANGLE2D: decode_rectangle2d,
    ScalarKind.ITEM: decode_item,
}


def decode_attribute(elem: Element, spec: AttributeSpec) -> Any:
    """Decode one attribute; `None` when optional and absent (no default applied)."""
    decoder = _DECODERS.get(spec.kind)
    if decoder is None:
        raise ConsistencyError(
            f"inconsistency: invalid kind '{spec.kind}' in descriptor of '{elem.tag}'",
            element=elem.tag, attribute=spec.name,
        )
    return decoder(elem, spec)


def check_unknown_attributes(elem: Element, names: Sequence[str]) -> None:
    for name in elem.attrib:
        if name not in names:
            raise SchemaError(
                f"unknown attribute '{name}' in element {describe(elem)}",
                element=elem.tag, attribute=name, ident=elem.get("id"),
            )


def decode_element(
    elem: Element,
    descriptor: Union[str, Sequence[AttributeSpec]],
    type_name: Optional[str] = None,
) -> ElementRecord:
    """Assemble a typed record from an element.

    `descriptor` is either an element-type name, looked up in the
    descriptor table, or an explicit spec list. The record's type tag is
    `type_name`, else the descriptor name, else the element tag.
    """
    if isinstance(descriptor, str):
        specs = lookup(descriptor)
        type_name = type_name or descriptor
    else:
        specs = tuple(descriptor)
        type_name = type_name or elem.tag

    check_unknown_attributes(elem, attribute_names(specs))

    values: Dict[str, Any] = {}
    for spec in specs:
        value = decode_attribute(elem, spec)
        if value is None and not spec.required and spec.default is not None:
            value = spec.default
        values[spec.name] = value

    return ElementRecord(type=type_name, values=values)


# ---------------------------------------------------------------------------
# Formatting (inverse of decoding)
# ---------------------------------------------------------------------------

def format_value(kind: ScalarKind, value: Any) -> str:
    """Render a decoded value back to attribute text."""
    if kind in (ScalarKind.STRING, ScalarKind.ITEM):
        return str(value)
    if kind == ScalarKind.BOOLEAN:
        return "true" if value else "false"
    if kind == ScalarKind.INTEGER:
        return str(int(value))
    if kind == ScalarKind.FLOAT:
        return number_to_str(value)
    if kind == ScalarKind.VECTOR2:
        return vector2_to_str(*value)
    if kind == ScalarKind.VECTOR3:
        return vector3_to_str(*value)
    if kind in (ScalarKind.RGBA, ScalarKind.RECTANGLE2D):
        return vector4_to_str(*value)
    raise ConsistencyError(f"inconsistency: cannot format values of kind '{kind}'")
