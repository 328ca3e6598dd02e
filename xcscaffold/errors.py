from typing import List, Optional


class ScaffoldError(Exception):
    pass


# An edge targets a node that does not exist in the graph
class DanglingReference(ScaffoldError):
    def __init__(self, id: str, context: Optional[str] = None):
        self.id = id
        self.context = context
        where = f" in {context}" if context else ""
        super().__init__(f"dangling reference{where}: {id}")


# A required input is missing or invalid, always names the offending field
class ConfigurationError(ScaffoldError):
    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class OrderingConflict(ScaffoldError):
    pass


class IdentifierCollision(ScaffoldError):
    pass


class InvalidProject(ScaffoldError):
    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("invalid project:\n  " + "\n  ".join(self.errors))


class ProjectFormatError(ScaffoldError):
    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)
