import pytest

from scenexml.core.logging import SceneLogger
from scenexml.core.types import SceneSettings


@pytest.fixture
def log():
    return SceneLogger()


@pytest.fixture
def settings(tmp_path):
    return SceneSettings(scene_dir=str(tmp_path))
