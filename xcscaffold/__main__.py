from argparse import ArgumentParser
from pathlib import Path
import logging
import sys

from xcscaffold.config import find_project_root
from xcscaffold.details.tools.enhance import enhance_main
from xcscaffold.details.tools.generate import generate_main
from xcscaffold.details.tools.init import init_main
from xcscaffold.details.tools.validate import validate_main
from xcscaffold.errors import ScaffoldError


def main():
    COMMANDS = {
        "init": init_main,
        "generate": generate_main,
        "enhance": enhance_main,
        "validate": validate_main,
    }
    # parse common arguments...
    parser = ArgumentParser(prog="xcscaffold")
    parser.add_argument("command", choices=COMMANDS.keys())
    parser.add_argument("--project-dir", type=str, default=".")
    parser.add_argument("--verbose", "-v", action="store_true")
    args, unknown_args = parser.parse_known_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    project_dir = Path(args.project_dir)
    if args.command != "init":
        # Commands on an existing project search upwards for its configuration
        project_dir = find_project_root(project_dir) or project_dir
    try:
        exit_code = COMMANDS[args.command](
            project_dir=project_dir,
            command_args=unknown_args,
        )
    except ScaffoldError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
    if exit_code is not None:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
