import os
from argparse import ArgumentParser
from pathlib import Path
from typing import Dict, List, Tuple

from xcscaffold.config import LibraryLink, LinkMode, read_config
from xcscaffold.errors import ConfigurationError
from xcscaffold.generators.xcode import XcodeGenerator
from xcscaffold.generators.xcode.enhance import enhance_project
from xcscaffold.generators.xcode.settings import SettingsMap
from xcscaffold.generators.xcode.utils import PROJECT_FILENAME


def _parse_settings(values: List[str]) -> SettingsMap:
    settings: Dict[str, List[str]] = {}
    for value in values:
        key, sep, setting = value.partition("=")
        if not sep or not key:
            raise ConfigurationError("setting", f"expected KEY=VALUE, got {value!r}")
        settings.setdefault(key, []).append(setting)
    # A key given once is a scalar setting
    return {key: v[0] if len(v) == 1 else v for key, v in settings.items()}


def _read_scripts(values: List[str]) -> List[Tuple[str, str]]:
    scripts = []
    for value in values:
        name, sep, path = value.partition("=")
        if not sep:
            name, path = os.path.splitext(os.path.basename(value))[0], value
        try:
            with open(path) as f:
                scripts.append((name, f.read()))
        except OSError as e:
            raise ConfigurationError("script", f"cannot read {path}: {e.strerror}") from e
    return scripts


def enhance_main(project_dir: Path, command_args: List[str]) -> int:
    parser = ArgumentParser(prog="xcscaffold enhance")
    parser.add_argument("--target", help="Target to change (default: the only target)")
    parser.add_argument("--file", dest="files", action="append", default=[])
    parser.add_argument("--resource", dest="resources", action="append", default=[])
    parser.add_argument(
        "--script",
        dest="scripts",
        action="append",
        default=[],
        help="NAME=PATH of a shell script to run before linking",
    )
    parser.add_argument("--library", help="Library to link, a framework or a source tree")
    parser.add_argument(
        "--library-mode",
        choices=[m.value for m in LinkMode],
        default=LinkMode.PREBUILT.value,
    )
    parser.add_argument(
        "--setting",
        dest="settings",
        action="append",
        default=[],
        help="KEY=VALUE build setting, repeat a key to build a list",
    )
    parser.add_argument(
        "--create-if-missing",
        action="store_true",
        help="Generate the project from its configuration when it does not exist",
    )
    args = parser.parse_args(command_args)

    config = read_config(project_dir)
    xcodeproj = config.xcodeproj_path
    if not xcodeproj.joinpath(PROJECT_FILENAME).exists() and args.create_if_missing:
        print(f"Generated {XcodeGenerator(config)()}")

    settings = _parse_settings(args.settings)
    library = None
    if args.library:
        library = LibraryLink(
            path=config.relative_path(os.path.abspath(args.library)),
            mode=args.library_mode,
        )

    changed = enhance_project(
        xcodeproj,
        target_name=args.target,
        files=[config.relative_path(os.path.abspath(f)) for f in args.files],
        resources=[config.relative_path(os.path.abspath(r)) for r in args.resources],
        scripts=_read_scripts(args.scripts),
        library=library,
        settings=settings,
    )
    print(f"Updated {xcodeproj}" if changed else f"{xcodeproj} is up to date")
    return 0
