"""Error taxonomy raised while loading a scene document."""

from typing import Optional


class SceneError(Exception):
    """Base class for every failure that aborts a scene parse.

    Carries optional context about where the failure happened so callers
    can report it without parsing the message.
    """

    def __init__(
        self,
        message: str,
        element: Optional[str] = None,
        attribute: Optional[str] = None,
        ident: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.element = element
        self.attribute = attribute
        self.ident = ident


class SchemaError(SceneError):
    """Unknown element/attribute, bad component count, bad value, missing attribute."""


class CardinalityError(SceneError):
    """A required sub-element is missing or appears too many times."""


class ConsistencyError(SceneError):
    """Duplicate ids, unresolved references, malformed descriptors, cycles."""


class DocumentLoadError(SceneError):
    """The document could not be read or is not well-formed XML."""
