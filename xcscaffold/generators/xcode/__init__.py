import logging
from pathlib import Path

from xcscaffold.config import Config
from xcscaffold.errors import ConfigurationError
from xcscaffold.generators.xcode.graph import ObjectGraph
from xcscaffold.generators.xcode.model import PBXNativeTarget
from xcscaffold.generators.xcode.model_builder import ProjectBuilder
from xcscaffold.generators.xcode.scheme import SchemeWriter
from xcscaffold.generators.xcode.utils import validate_xcodeproj_path, write_project
from xcscaffold.generators.xcode.validator import validate_project

logger = logging.getLogger(__name__)

# Platform validation constants
SUPPORTED_PLATFORMS = ["macos", "ios"]
SUPPORTED_ARCHITECTURES = ["arm64", "x86_64"]


def _generate(config: Config, check_paths: bool = False) -> Path:
    xcodeproj = validate_xcodeproj_path(config.xcodeproj_path)

    # Build and validate the whole graph before anything touches the disk
    graph: ObjectGraph = ProjectBuilder(config).build()
    validate_project(graph, config.project_dir if check_paths else None)

    write_project(graph, xcodeproj)
    for target in graph.nodes(PBXNativeTarget):
        SchemeWriter(graph, target, xcodeproj.name).write(xcodeproj)
    logger.debug("generated %s", xcodeproj)
    return xcodeproj


class XcodeGenerator:
    def __init__(self, config: Config, check_paths: bool = False):
        self.config = config
        self.check_paths = check_paths

        # Validate platform and architecture
        for platform in self.config.platforms:
            if platform.value not in SUPPORTED_PLATFORMS:
                raise ConfigurationError("platforms", f"unsupported platform {platform.value}")
        if self.config.library is not None:
            for arch in self.config.library.architectures:
                if arch not in SUPPORTED_ARCHITECTURES:
                    raise ConfigurationError(
                        "library.architectures", f"unsupported architecture {arch}"
                    )

    def __call__(self) -> Path:
        """Generate the Xcode project and return the path of the .xcodeproj bundle."""
        return _generate(self.config, self.check_paths)
