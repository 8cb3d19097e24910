from typing import List, Optional
from xml.etree.ElementTree import Element, ParseError, fromstring, parse

from ..core.errors import DocumentLoadError


def read_xml_file(filepath: str) -> Element:
    """Read and parse an XML file, returning its root element."""
    try:
        return parse(filepath).getroot()
    except OSError as e:
        raise DocumentLoadError(f"unable to read '{filepath}': {e}") from e
    except ParseError as e:
        raise DocumentLoadError(f"malformed XML in '{filepath}': {e}") from e


def read_xml_string(text: str) -> Element:
    """Parse XML text, returning its root element."""
    try:
        return fromstring(text)
    except ParseError as e:
        raise DocumentLoadError(f"malformed XML: {e}") from e


def child_elements(parent: Element, tag: Optional[str] = None) -> List[Element]:
    """Direct children of an element, optionally filtered by tag, in document order."""
    if tag is None:
        return list(parent)
    return [child for child in parent if child.tag == tag]


def describe(elem: Element) -> str:
    """Short label for error messages: tag plus id when present."""
    ident = elem.get("id")
    return f"{elem.tag} '{ident}'" if ident is not None else elem.tag


def number_to_str(value: float) -> str:
    return f"{value:g}"


def vector2_to_str(x: float, y: float) -> str:
    return f"{x:g} {y:g}"


def vector3_to_str(x: float, y: float, z: float) -> str:
    return f"{x:g} {y:g} {z:g}"


def vector4_to_str(x: float, y: float, z: float, w: float) -> str:
    return f"{x:g} {y:g} {z:g} {w:g}"
