import logging

from scenexml.core.errors import CardinalityError, SceneError
from scenexml.core.logging import SceneLogger


def test_levels_are_collected_and_counted():
    log = SceneLogger()
    log.debug("hidden")
    log.info("a")
    log.warning("b")
    log.error("c")
    assert log.messages == [("INFO", "a"), ("WARNING", "b"), ("ERROR", "c")]
    assert log.warning_count == 1
    assert log.error_count == 1
    assert log.has_errors
    assert list(log.at_level("WARNING")) == ["b"]
    assert log.summary() == "1 warnings, 1 errors"
    log.clear()
    assert log.messages == [] and not log.has_errors


def test_message_limit():
    log = SceneLogger(max_messages=2)
    for i in range(5):
        log.info(str(i))
    assert len(log.messages) == 2
    assert log.dropped == 3


def test_messages_are_forwarded_to_logging(caplog):
    with caplog.at_level(logging.DEBUG, logger="scenexml"):
        SceneLogger().debug("forwarded")
    assert "forwarded" in caplog.text


def test_errors_carry_context():
    err = CardinalityError("expected element 'fog' not found", element="fog")
    assert isinstance(err, SceneError)
    assert err.element == "fog"
    assert err.attribute is None
    assert str(err) == "expected element 'fog' not found"
