"""
Shared fixtures for the xcscaffold tests.
"""

from pathlib import Path

import pytest

from xcscaffold.config import Config, LibraryLink
from xcscaffold.generators.xcode.model_builder import ProjectBuilder


def make_config(project_dir=".", **overrides) -> Config:
    options = dict(
        name="Demo",
        bundle_id="com.example.demo",
        platforms=["macos"],
        sources=["main.cpp"],
        info_plist="Info.plist",
        project_dir=str(project_dir),
    )
    options.update(overrides)
    return Config(**options)


@pytest.fixture
def macos_config() -> Config:
    return make_config(sources=["a.cpp", "b.cpp"])


@pytest.fixture
def ios_prebuilt_config() -> Config:
    return make_config(
        platforms=["ios"],
        library=LibraryLink(path="../Vendor/Engine.xcframework"),
    )


@pytest.fixture
def source_library_config() -> Config:
    return make_config(
        library=LibraryLink(path="../engine", mode="source", libraries=["engine"]),
    )


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    """An app directory holding the files a default configuration refers to."""
    (tmp_path / "main.cpp").write_text("int main() { return 0; }\n")
    (tmp_path / "Info.plist").write_text("<plist/>\n")
    return tmp_path


@pytest.fixture
def generated(app_dir: Path):
    """A project written to disk by the generator, with its configuration."""
    from xcscaffold.config import write_config
    from xcscaffold.generators.xcode import XcodeGenerator

    config = make_config(project_dir=app_dir)
    write_config(app_dir, config)
    xcodeproj = XcodeGenerator(config)()
    return config, xcodeproj


def build_graph(config: Config):
    return ProjectBuilder(config).build()
