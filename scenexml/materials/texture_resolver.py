"""Resource requests emitted by the hierarchy builder, and their loader."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Tuple

from ..core.logging import SceneLogger
from ..core.types import ResourceKind, SceneSettings


class RequestState(Enum):
    PENDING = auto()
    LOADED = auto()
    FAILED = auto()


@dataclass(eq=False)
class ResourceRequest:
    """One external file the renderer needs, with how it should be opened."""
    kind: ResourceKind
    path: str                      # resolved against the scene directory
    params: Dict[str, Any] = field(default_factory=dict)
    state: RequestState = RequestState.PENDING
    payload: Optional[bytes] = field(default=None, repr=False)
    error: str = ""

    @property
    def done(self) -> bool:
        return self.state is not RequestState.PENDING


def image_request(path: str, settings: SceneSettings, **params) -> ResourceRequest:
    return ResourceRequest(ResourceKind.IMAGE, settings.resolve_path(path), dict(params))


def video_request(path: str, settings: SceneSettings) -> ResourceRequest:
    # Video textures always stream looped and muted
    return ResourceRequest(
        ResourceKind.VIDEO, settings.resolve_path(path),
        {"loop": True, "muted": True},
    )


def model_request(path: str, settings: SceneSettings) -> ResourceRequest:
    return ResourceRequest(ResourceKind.MODEL, settings.resolve_path(path))


def _read_resource(path: str) -> Tuple[Optional[bytes], str]:
    if not path:
        return None, "empty resource path"
    if not os.path.isfile(path):
        return None, f"file not found: {path}"
    try:
        with open(path, "rb") as f:
            return f.read(), ""
    except OSError as e:
        return None, str(e)


class ResourceLoader:
    """Reads requested files on a worker pool.

    Failures are recorded on the request and logged; nothing is raised
    into the scene.
    """

    def __init__(self, settings: Optional[SceneSettings] = None,
                 log: Optional[SceneLogger] = None):
        self.settings = settings or SceneSettings()
        self.log = log or SceneLogger(self.settings.max_log_messages)

    def load_all(self, requests: List[ResourceRequest]) -> List[ResourceRequest]:
        pending = [r for r in requests if not r.done]
        if not pending:
            return requests

        # Several requests may point at the same file; read it once
        paths = list(dict.fromkeys(r.path for r in pending))
        workers = max(1, self.settings.resource_workers)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = dict(zip(paths, executor.map(_read_resource, paths)))

        for request in pending:
            payload, error = results[request.path]
            if payload is None:
                request.state = RequestState.FAILED
                request.error = error
                self.log.warning(
                    f"Unable to load {request.kind.name.lower()} '{request.path}': {error}")
            else:
                request.state = RequestState.LOADED
                request.payload = payload

        failed = sum(1 for r in pending if r.state is RequestState.FAILED)
        self.log.info(f"Loaded {len(pending) - failed}/{len(pending)} resources")
        if failed == len(pending):
            self.log.error("No requested resource could be loaded")
        return requests
