from argparse import ArgumentParser
from pathlib import Path
from typing import List

from xcscaffold.config import read_config
from xcscaffold.generators.xcode import XcodeGenerator


def generate_main(project_dir: Path, command_args: List[str]) -> int:
    parser = ArgumentParser(prog="xcscaffold generate")
    parser.add_argument(
        "--check-paths",
        action="store_true",
        help="Fail when a referenced file does not exist",
    )
    args = parser.parse_args(command_args)

    config = read_config(project_dir)
    xcodeproj = XcodeGenerator(config, check_paths=args.check_paths)()
    print(f"Generated {xcodeproj}")
    return 0
