"""Command line inspector: parse a scene file and report on it."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .core.errors import SceneError
from .core.logging import SceneLogger
from .core.types import SceneSettings
from .data.render_scene import RenderCamera, RenderGroup, RenderLight, RenderLod, RenderMesh, RenderObject
from .scene.hierarchy import build_scene_hierarchy
from .scene.loader import SceneLoader


def _describe(obj: RenderObject) -> str:
    if isinstance(obj, RenderMesh):
        return f"mesh {obj.name} ({type(obj.geometry).__name__})"
    if isinstance(obj, RenderLight):
        return f"light {obj.name} ({obj.kind.value})"
    if isinstance(obj, RenderLod):
        return f"lod {obj.name} ({len(obj.levels)} levels)"
    if isinstance(obj, RenderCamera):
        return f"camera {obj.name} ({obj.projection})"
    if isinstance(obj, RenderGroup):
        return f"node {obj.name}"
    return obj.name


def format_tree(obj: RenderObject, indent: int = 0) -> List[str]:
    return ["  " * (indent + depth) + _describe(node) for node, depth in obj.walk_with_depth()]


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="scenexml", description="Parse and inspect a scene XML file")
    parser.add_argument("file", help="scene XML document")
    parser.add_argument("--validate-only", action="store_true", help="stop after parsing")
    parser.add_argument("--tree", action="store_true", help="print the realized node tree")
    parser.add_argument("--verbose", "-v", action="store_true", help="log debug messages")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    settings = SceneSettings()
    log = SceneLogger(settings.max_log_messages)
    try:
        document = SceneLoader(settings, log).load_file(args.file)
        if args.validate_only:
            print(f"{args.file}: ok ({len(document.nodes)} nodes, {len(document.lods)} lods)")
            return 0
        scene = build_scene_hierarchy(document, settings, log)
    except SceneError as e:
        print(f"{args.file}: {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    if args.tree:
        print("\n".join(format_tree(scene.root)))

    print(f"{args.file}: {len(scene.meshes())} meshes, {len(scene.lights)} lights, "
          f"{len(scene.cameras)} cameras (active: {scene.active_camera_id})")
    print(log.summary())
    return 0


if __name__ == "__main__":
    sys.exit(main())
