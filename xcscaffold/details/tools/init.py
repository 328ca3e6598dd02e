import os
import sys
from argparse import ArgumentParser
from pathlib import Path
from typing import List

from xcscaffold.config import (
    CONFIG_FILENAME,
    LibraryLink,
    LinkMode,
    Platform,
    default_config,
    write_config,
)
from xcscaffold.details import templates
from xcscaffold.generators.xcode import XcodeGenerator
from xcscaffold.generators.xcode.settings import DEFAULT_APP_ICON


def init_main(project_dir: Path, command_args: List[str]) -> int:
    parser = ArgumentParser(prog="xcscaffold init")
    parser.add_argument("name", help="Application name, also the new directory's name")
    parser.add_argument(
        "--platform",
        dest="platforms",
        action="append",
        choices=[p.value for p in Platform],
        help="Target platform, repeat for several (default: macos)",
    )
    parser.add_argument("--team-id", default="", help="Apple development team")
    parser.add_argument("--library", help="Library to link, a framework or a source tree")
    parser.add_argument(
        "--library-mode",
        choices=[m.value for m in LinkMode],
        default=LinkMode.PREBUILT.value,
    )
    args = parser.parse_args(command_args)

    app_dir = project_dir.joinpath(args.name)
    if app_dir.joinpath(CONFIG_FILENAME).exists():
        print(f"ERROR: {app_dir} already contains {CONFIG_FILENAME}", file=sys.stderr)
        return 1

    library = None
    if args.library:
        library = LibraryLink(path=os.path.abspath(args.library), mode=args.library_mode)
    config = default_config(
        args.name,
        args.platforms or [Platform.MACOS.value],
        project_dir=app_dir,
        team_id=args.team_id,
        library=library,
    )

    # Starter files, kept when they already exist
    app_dir.mkdir(parents=True, exist_ok=True)
    if config.library is not None:
        main = templates.main_cpp_with_library(config.name, config.library)
    else:
        main = templates.main_cpp(config.name)
    starters = {
        config.sources[0]: main.encode("utf-8"),
        config.info_plist: templates.info_plist(config.platform),
    }
    if config.entitlements:
        starters[config.entitlements] = templates.entitlements_plist(config.platform)
    for catalog in config.resources:
        if catalog.endswith(".xcassets"):
            starters[os.path.join(catalog, "Contents.json")] = templates.asset_catalog_contents()
            starters[
                os.path.join(catalog, f"{DEFAULT_APP_ICON}.appiconset", "Contents.json")
            ] = templates.app_icon_contents(config.platform)
    for relative, content in starters.items():
        path = app_dir.joinpath(relative)
        if not path.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
            print(f"Created {path}")

    print(f"Created {write_config(app_dir, config)}")
    print(f"Created {XcodeGenerator(config)()}")
    return 0
