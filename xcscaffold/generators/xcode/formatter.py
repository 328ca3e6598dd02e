"""
Xcode project file formatter.

This module renders an ObjectGraph as a project file (.pbxproj). Values are
formatted recursively by type: identifiers are written bare with a comment
derived from the graph, strings are always quoted, integers are bare and
objects list `isa` first followed by their remaining keys in sorted order.
The same graph always renders to the same bytes.
"""

import dataclasses
import enum
import re
from typing import Dict, List, Optional, Union

from xcscaffold.generators.xcode.graph import ObjectGraph
from xcscaffold.generators.xcode.model import (
    BuildSetting,
    PBXBuildFile,
    PBXBuildPhase,
    PBXNativeTarget,
    PBXProject,
    Reference,
    XCConfigurationList,
    XcodeID,
    XcodeObject,
)

ARCHIVE_VERSION = 1
OBJECT_VERSION = 56
HEADER = "// !$*UTF8*$!"

FormattableValue = Union[None, Reference, BuildSetting, dict, list, enum.Enum, int, str]
Comments = Dict[XcodeID, str]

_BARE_KEY = re.compile(r"[A-Za-z0-9_.]+")
_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\t": "\\t"}


def format_project(graph: ObjectGraph, name: Optional[str] = None) -> str:
    """
    Convert an object graph to its project file representation.

    Args:
        graph: The graph to format. Its root must be set.
        name: The project name used in the comment of the project's
            configuration list. Defaults to the name of the first target.

    Returns:
        A string containing the formatted project file content.
    """
    project = graph.project
    comments = collect_comments(graph, name)

    lines = [HEADER, "{"]
    lines.append(f"\tarchiveVersion = {ARCHIVE_VERSION};")
    lines.append(f"\tclasses = {format_dict({}, 1, comments)};")
    lines.append(f"\tobjectVersion = {OBJECT_VERSION};")
    lines.append("\tobjects = {")
    for node in sorted(graph.nodes(), key=lambda n: n.id):
        lines.append(
            f"\t\t{format_reference(node.id, comments)} = {format_object(node, 2, comments)};"
        )
    lines.append("\t};")
    lines.append(f"\trootObject = {format_reference(project.id, comments)};")
    lines.append("}")
    return "\n".join(lines) + "\n"


def collect_comments(graph: ObjectGraph, name: Optional[str] = None) -> Comments:
    """
    Compute the annotation written next to every identifier.

    Build files are named after their file and the phase holding them, and
    configuration lists after the object that owns them.
    """
    comments: Comments = {}
    for node in graph.nodes():
        comment = node.comment()
        if comment:
            comments[node.id] = comment

    for phase in graph.nodes(PBXBuildPhase):
        for ref in phase.files:
            build_file = graph.resolve(ref.id)
            if not isinstance(build_file, PBXBuildFile):
                continue
            file_comment = comments.get(build_file.fileRef.id)
            if file_comment:
                comments[build_file.id] = f"{file_comment} in {phase.comment()}"

    targets = list(graph.nodes(PBXNativeTarget))
    project_name = name or (targets[0].name if targets else "")
    owners: List[Union[PBXNativeTarget, PBXProject]] = list(targets)
    owners.extend(graph.nodes(PBXProject))
    for owner in owners:
        config_list = owner.buildConfigurationList.id
        if config_list not in graph or not isinstance(
            graph.resolve(config_list), XCConfigurationList
        ):
            continue
        owner_name = owner.name if isinstance(owner, PBXNativeTarget) else project_name
        comments[config_list] = (
            f'Build configuration list for {owner.isa()} "{owner_name}"'
        )
    return comments


def format_reference(id: XcodeID, comments: Comments) -> str:
    comment = comments.get(id)
    if comment:
        return f"{id} /* {comment.replace('*/', '* /')} */"
    return id


def format_object(node: XcodeObject, indent_level: int, comments: Comments) -> str:
    indent = "\t" * indent_level
    inner_indent = "\t" * (indent_level + 1)

    result = "{\n"
    result += f"{inner_indent}isa = {node.isa()};\n"
    values = {
        field.name: getattr(node, field.name)
        for field in dataclasses.fields(node)
        if field.name != "id"
    }
    for key in sorted(values):
        value = values[key]
        if value is None:
            continue
        result += f"{inner_indent}{format_key(key)} = {format_value(value, indent_level + 1, comments)};\n"
    result += f"{indent}}}"
    return result


def format_key(key: str) -> str:
    if _BARE_KEY.fullmatch(key):
        return key
    return format_string(key)


def format_string(value: str) -> str:
    return '"' + "".join(_ESCAPES.get(c, c) for c in value) + '"'


def format_value(value: FormattableValue, indent_level: int, comments: Comments) -> str:
    """
    Format a value based on its type.

    Args:
        value: The value to format.
        indent_level: The current indentation level.
        comments: Identifier annotations from collect_comments.

    Returns:
        A string representing the formatted value.
    """
    if isinstance(value, Reference):
        return format_reference(value.id, comments)

    elif isinstance(value, BuildSetting):
        return format_value(value.value, indent_level, comments)

    elif isinstance(value, enum.Enum):
        return format_enum(value)

    elif isinstance(value, list):
        return format_list(value, indent_level, comments)

    elif isinstance(value, dict):
        return format_dict(value, indent_level, comments)

    # bool is an int subclass and has no representation in project files
    elif isinstance(value, int) and not isinstance(value, bool):
        return str(value)

    elif isinstance(value, str):
        return format_string(value)

    else:
        raise TypeError(f"Unsupported type: {type(value).__name__} for value: {value!r}")


def format_dict(
    value_dict: Dict[str, FormattableValue], indent_level: int, comments: Comments
) -> str:
    indent = "\t" * indent_level
    inner_indent = "\t" * (indent_level + 1)

    # Empty dictionaries have braces on separate lines for Xcode compatibility
    if not value_dict:
        return "{\n" + indent + "}"

    result = "{\n"
    for key in sorted(value_dict.keys()):
        value = value_dict[key]
        if value is None:
            continue
        formatted_value = format_value(value, indent_level + 1, comments)
        result += f"{inner_indent}{format_key(key)} = {formatted_value};\n"
    result += f"{indent}}}"
    return result


def format_list(
    value_list: List[FormattableValue], indent_level: int, comments: Comments
) -> str:
    if not value_list:
        return "()"

    # Single-item lists stay on one line
    if len(value_list) == 1:
        return f"({format_value(value_list[0], indent_level, comments)})"

    indent = "\t" * indent_level
    inner_indent = "\t" * (indent_level + 1)

    result = "(\n"
    for item in value_list:
        result += f"{inner_indent}{format_value(item, indent_level + 1, comments)},\n"
    result += f"{indent})"
    return result


def format_enum(value_enum: enum.Enum) -> str:
    if isinstance(value_enum.value, str):
        return format_string(value_enum.value)
    return str(value_enum.value)
