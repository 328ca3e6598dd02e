import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from xcscaffold.errors import ConfigurationError
from xcscaffold.generators.xcode.formatter import format_project
from xcscaffold.generators.xcode.graph import ObjectGraph

logger = logging.getLogger(__name__)


def validate_xcodeproj_path(path: Union[str, Path]) -> Path:
    """
    Validate that the path names an .xcodeproj bundle and return it.

    Args:
        path: The path of the project bundle.

    Returns:
        The validated project path.

    Raises:
        ConfigurationError: If the path does not end with .xcodeproj.
    """
    xcodeproj = Path(path)
    if xcodeproj.suffix != ".xcodeproj":
        raise ConfigurationError(
            "project",
            f"Xcode projects must be written to a path ending with '.xcodeproj'. "
            f"Got '{xcodeproj}' instead."
        )
    return xcodeproj


def write_atomic(path: Path, data: bytes) -> bool:
    """
    Replace the contents of `path` with `data` through a temporary file in the
    same directory, so readers see either the old or the new file. Nothing is
    written when the contents are unchanged.

    Returns:
        True when the file was written.
    """
    # Check if previous version matches and early exit to avoid bumping timestamps
    try:
        with path.open("rb") as f:
            if f.read() == data:
                logger.debug("%s is up to date", path)
                return False
    except FileNotFoundError:
        pass
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(temp_name, path)
    except BaseException:
        os.unlink(temp_name)
        raise
    logger.debug("wrote %s", path)
    return True


PROJECT_FILENAME = "project.pbxproj"


def write_project(graph: ObjectGraph, xcodeproj: Path) -> bool:
    text = format_project(graph, name=xcodeproj.stem)
    return write_atomic(xcodeproj.joinpath(PROJECT_FILENAME), text.encode("utf-8"))
