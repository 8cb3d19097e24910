from xml.etree.ElementTree import fromstring

import pytest

from scenexml.core.errors import ConsistencyError, SchemaError
from scenexml.data.descriptors import AttributeSpec, ScalarKind
from scenexml.data.scene_data import RGBA, Rectangle2D
from scenexml.formats.attributes import decode_attribute, decode_element, format_value


def _decode(kind, text, required=True, choices=None):
    elem = fromstring(f'<e a="{text}" />') if text is not None else fromstring("<e />")
    spec = AttributeSpec("a", kind, required=required,
                         choices=frozenset(choices) if choices else None)
    return decode_attribute(elem, spec)


@pytest.mark.parametrize("text,expected", [
    ("1", True), ("true", True), ("T", True), ("TRUE", True),
    ("0", False), ("false", False), ("f", False), ("False", False),
])
def test_boolean_choices(text, expected):
    assert _decode(ScalarKind.BOOLEAN, text) is expected


def test_boolean_invalid_choice():
    with pytest.raises(SchemaError) as exc:
        _decode(ScalarKind.BOOLEAN, "yes")
    assert "not a choice" in str(exc.value)


def test_absent_optional_boolean_is_none_not_default():
    assert _decode(ScalarKind.BOOLEAN, None, required=False) is None


def test_missing_required_attribute():
    with pytest.raises(SchemaError) as exc:
        _decode(ScalarKind.STRING, None)
    assert exc.value.attribute == "a"


def test_integer_and_float():
    assert _decode(ScalarKind.INTEGER, "7") == 7
    assert _decode(ScalarKind.INTEGER, "2.0") == 2
    assert _decode(ScalarKind.FLOAT, "-1.5") == -1.5
    with pytest.raises(SchemaError):
        _decode(ScalarKind.INTEGER, "2.5")
    with pytest.raises(SchemaError):
        _decode(ScalarKind.FLOAT, "abc")


def test_vectors_split_on_any_whitespace():
    assert _decode(ScalarKind.VECTOR3, "1  2\t3") == (1.0, 2.0, 3.0)
    assert _decode(ScalarKind.VECTOR2, "0 1") == (0.0, 1.0)


@pytest.mark.parametrize("kind,text", [
    (ScalarKind.VECTOR2, "1 2 3"),
    (ScalarKind.VECTOR3, "1 2"),
    (ScalarKind.RGBA, "1 1 1"),
    (ScalarKind.RECTANGLE2D, "0 0 1 1 1"),
])
def test_component_count_errors(kind, text):
    with pytest.raises(SchemaError) as exc:
        _decode(kind, text)
    assert "number of components" in str(exc.value)


def test_rgba_keeps_alpha_unclamped():
    color = _decode(ScalarKind.RGBA, "0.5 0.25 1 0.3")
    assert color == RGBA(0.5, 0.25, 1.0, 0.3)
    assert color.rgb == (0.5, 0.25, 1.0)
    assert _decode(ScalarKind.RGBA, "2 2 2 1.5").a == 1.5


def test_rectangle2d():
    assert _decode(ScalarKind.RECTANGLE2D, "0 1 2 3") == Rectangle2D(0, 1, 2, 3)


def test_item_is_lower_cased_and_checked():
    assert _decode(ScalarKind.ITEM, "FLAT", choices=("flat", "smooth")) == "flat"
    with pytest.raises(SchemaError):
        _decode(ScalarKind.ITEM, "phong", choices=("flat", "smooth"))


def test_item_without_choices_is_malformed_descriptor():
    with pytest.raises(ConsistencyError):
        _decode(ScalarKind.ITEM, "flat")


def test_decode_element_applies_defaults_and_type_tag():
    record = decode_element(fromstring('<rectangle xy1="0 0" xy2="2 1" />'), "rectangle")
    assert record.type == "rectangle"
    assert record["xy2"] == (2.0, 1.0)
    assert record["parts_x"] == 1
    assert record["distance"] == 0.0


def test_decode_element_keeps_none_without_default():
    record = decode_element(fromstring('<texture id="t" filepath="t.png" />'), "texture")
    assert record["mipmap0"] is None
    assert record["isVideo"] is False


def test_decode_element_rejects_unknown_attribute():
    elem = fromstring('<rectangle xy1="0 0" xy2="1 1" color="red" />')
    with pytest.raises(SchemaError) as exc:
        decode_element(elem, "rectangle")
    assert "unknown attribute 'color'" in str(exc.value)


def test_decode_element_with_explicit_specs():
    specs = [AttributeSpec("x", ScalarKind.FLOAT)]
    record = decode_element(fromstring('<point x="3" />'), specs)
    assert record.type == "point"
    assert record["x"] == 3.0


@pytest.mark.parametrize("kind,text", [
    (ScalarKind.VECTOR3, "1 2 3"),
    (ScalarKind.VECTOR2, "0.5 -1"),
    (ScalarKind.RGBA, "1 0 0 0.5"),
    (ScalarKind.FLOAT, "0.25"),
    (ScalarKind.INTEGER, "12"),
    (ScalarKind.BOOLEAN, "true"),
])
def test_format_round_trips(kind, text):
    value = _decode(kind, text)
    assert _decode(kind, format_value(kind, value)) == value
