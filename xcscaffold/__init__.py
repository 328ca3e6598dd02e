from xcscaffold.config import Config, LibraryLink, LinkMode, Platform
from xcscaffold.errors import (
    ConfigurationError,
    DanglingReference,
    IdentifierCollision,
    InvalidProject,
    OrderingConflict,
    ProjectFormatError,
    ScaffoldError,
)
