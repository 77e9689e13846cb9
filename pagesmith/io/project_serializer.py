"""ProjectSerializer — scene documents and .pgs ZIP archives."""

from __future__ import annotations

import json
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pagesmith.config.constants import (
    APP_VERSION,
    DEFAULT_PAGE_FILL,
    DEFAULT_PAGE_HEIGHT,
    DEFAULT_PAGE_WIDTH,
    PROJECT_EXTENSION,
    PROJECT_FORMAT_VERSION,
)
from pagesmith.core.errors import DocumentFormatError
from pagesmith.core.scene_graph import SceneGraph
from pagesmith.core.scene_object import SceneObject, make_workspace

if TYPE_CHECKING:
    from pagesmith.core.controller import SceneController


def document_from_scene(graph: SceneGraph) -> dict[str, Any]:
    """Serialize the scene into a plain JSON document (workspace first)."""
    workspace = graph.workspace
    return {
        "format_version": PROJECT_FORMAT_VERSION,
        "width": workspace.geometry.width,
        "height": workspace.geometry.height,
        "background": workspace.style.fill,
        "objects": [obj.serialize() for obj in graph.objects_in_z_order()],
    }


def scene_from_document(document: dict[str, Any]) -> tuple[SceneObject, list[SceneObject]]:
    """Rebuild ``(workspace, objects)`` from a document without touching any scene.

    Raises
    ------
    DocumentFormatError
        If the document is malformed or from a newer format version.
    """
    if not isinstance(document, dict):
        raise DocumentFormatError("scene document must be a mapping")
    version = document.get("format_version", PROJECT_FORMAT_VERSION)
    if not isinstance(version, int) or version > PROJECT_FORMAT_VERSION:
        raise DocumentFormatError(f"unsupported format version {version!r}")
    entries = document.get("objects", [])
    if not isinstance(entries, list):
        raise DocumentFormatError("document 'objects' must be a list")

    workspace: SceneObject | None = None
    objects: list[SceneObject] = []
    for entry in entries:
        obj = SceneObject.deserialize(entry)
        if obj.is_workspace:
            if workspace is not None:
                raise DocumentFormatError("document contains more than one workspace")
            workspace = obj
        else:
            objects.append(obj)

    try:
        width = float(document.get("width", DEFAULT_PAGE_WIDTH))
        height = float(document.get("height", DEFAULT_PAGE_HEIGHT))
    except (TypeError, ValueError) as exc:
        raise DocumentFormatError(f"invalid page size: {exc}") from exc
    if width <= 0 or height <= 0:
        raise DocumentFormatError(f"invalid page size {width}x{height}")
    background = document.get("background", DEFAULT_PAGE_FILL)
    if workspace is None:
        workspace = make_workspace(width, height, background)
    else:
        workspace.geometry.width = width
        workspace.geometry.height = height
        workspace.style.fill = background

    seen: set[str] = set()
    for obj in objects:
        _check_unique_ids(obj, seen)
    return workspace, objects


def _check_unique_ids(obj: SceneObject, seen: set[str]) -> None:
    if obj.object_id in seen:
        raise DocumentFormatError(f"duplicate object id {obj.object_id}")
    seen.add(obj.object_id)
    for child in obj.children:
        _check_unique_ids(child, seen)


def save_project(controller: SceneController, path: Path) -> Path:
    """Save the controller's scene to a project ZIP archive.

    A path without a suffix gets the project extension.  Returns the path
    actually written.
    """
    path = Path(path)
    if not path.suffix:
        path = path.with_suffix(PROJECT_EXTENSION)
    controller.flush_pending_commit()
    document = controller.serialize()
    manifest: dict[str, Any] = {
        "format_version": PROJECT_FORMAT_VERSION,
        "app_version": APP_VERSION,
        "page": {"width": document["width"], "height": document["height"]},
        "object_count": len(document["objects"]) - 1,
    }

    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("manifest.json", json.dumps(manifest, indent=2))
        zf.writestr("document.json", json.dumps(document, indent=2))
    return path


def read_project(path: Path) -> dict[str, Any]:
    """Return the scene document stored in a .pgs archive."""
    try:
        with zipfile.ZipFile(path, "r") as zf:
            manifest = json.loads(zf.read("manifest.json"))
            document = json.loads(zf.read("document.json"))
    except (KeyError, zipfile.BadZipFile, ValueError) as exc:
        raise DocumentFormatError(f"cannot read project {path}: {exc}") from exc

    version = manifest.get("format_version", PROJECT_FORMAT_VERSION)
    if not isinstance(version, int) or version > PROJECT_FORMAT_VERSION:
        raise DocumentFormatError(f"project {path} has unsupported format version {version!r}")
    return document


def load_project(path: Path, controller: SceneController | None = None) -> SceneController:
    """Load a .pgs archive into *controller* (or a new one) and return it."""
    document = read_project(path)
    if controller is None:
        from pagesmith.core.controller import SceneController

        controller = SceneController()
    if not controller.load_document(document):
        raise DocumentFormatError(f"project {path} could not be loaded")
    return controller
