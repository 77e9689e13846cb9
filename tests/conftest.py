"""Shared pytest fixtures."""

import os
from pathlib import Path

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PyQt6.QtCore import QSettings
from PyQt6.QtWidgets import QApplication

from pagesmith.config.settings import EditorSettings
from pagesmith.core.controller import SceneController
from pagesmith.core.render_target import NullRenderTarget
from pagesmith.core.scene_graph import SceneGraph


@pytest.fixture()
def settings(tmp_path: Path) -> EditorSettings:
    """EditorSettings backed by a throwaway INI file."""
    qs = QSettings(str(tmp_path / "pagesmith.ini"), QSettings.Format.IniFormat)
    return EditorSettings(qs)


@pytest.fixture()
def graph(qapp: QApplication) -> SceneGraph:
    """Create a bare SceneGraph with the default 800x600 page."""
    return SceneGraph()


@pytest.fixture()
def render_target() -> NullRenderTarget:
    return NullRenderTarget()


@pytest.fixture()
def controller(
    qapp: QApplication, settings: EditorSettings, render_target: NullRenderTarget
) -> SceneController:
    """Create a SceneController on an 800x600 page with isolated settings."""
    return SceneController(settings=settings, render_target=render_target)
