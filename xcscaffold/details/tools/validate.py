from argparse import ArgumentParser
from pathlib import Path
from typing import List

from xcscaffold.config import read_config
from xcscaffold.generators.xcode.enhance import open_project
from xcscaffold.generators.xcode.graph import ObjectGraph
from xcscaffold.generators.xcode.model import PBXNativeTarget
from xcscaffold.generators.xcode.validator import validate_project


def _print_summary(graph: ObjectGraph) -> None:
    for target in graph.nodes(PBXNativeTarget):
        print(f"{target.name}:")
        for ref in target.buildPhases:
            phase = graph.resolve(ref.id)
            print(f"  {phase.comment()} ({len(phase.files)} files)")


def validate_main(project_dir: Path, command_args: List[str]) -> int:
    parser = ArgumentParser(prog="xcscaffold validate")
    parser.add_argument("--check-paths", action="store_true")
    args = parser.parse_args(command_args)

    config = read_config(project_dir)
    graph = open_project(config.xcodeproj_path)
    validate_project(graph, config.project_dir if args.check_paths else None)
    _print_summary(graph)
    print(f"{config.xcodeproj_path} is valid")
    return 0
