"""Structural checks on the element tree: allowed tags and cardinalities."""

from typing import List, Optional, Sequence
from xml.etree.ElementTree import Element

from ..core.errors import CardinalityError, SchemaError
from .xml_utils import child_elements, describe


def check_unknown_elements(parent: Element, allowed: Sequence[str]) -> None:
    """Fail on the first child whose tag is not in `allowed`."""
    for child in parent:
        if child.tag not in allowed:
            raise SchemaError(
                f"unknown xml element '{child.tag}' descendent of element "
                f"'{parent.tag}'",
                element=child.tag, ident=parent.get("id"),
            )


def check_instances(
    elements: List[Element],
    name: str,
    min_instances: int = 1,
    max_instances: Optional[int] = 1,
    parent: Optional[Element] = None,
) -> None:
    """Fail when the number of `name` elements is outside [min, max].

    `max_instances=None` leaves the count unbounded above.
    """
    count = len(elements)
    too_many = max_instances is not None and count > max_instances
    if count < min_instances or too_many:
        where = f" in {describe(parent)}" if parent is not None else ""
        upper = "unbounded" if max_instances is None else str(max_instances)
        if count == 0:
            message = f"expected element '{name}' not found{where}."
        else:
            message = (
                f"expected number of '{name}' elements{where} to be between "
                f"{min_instances} and {upper}, but found {count}."
            )
        raise CardinalityError(
            message, element=name,
            ident=parent.get("id") if parent is not None else None,
        )


def get_and_check(
    parent: Element,
    name: str,
    min_instances: int = 1,
    max_instances: Optional[int] = 1,
) -> Optional[Element]:
    """Return the first `name` child after checking its instance count."""
    elements = child_elements(parent, name)
    check_instances(elements, name, min_instances, max_instances, parent)
    return elements[0] if elements else None
