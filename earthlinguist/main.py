"""
Command line entry point for EarthLinguist.

Manages the example catalog and the recording/listening sessions stored
under the workspace root without the graphical front end.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .choices import load_countries, load_languages
from .config import SessionMode
from .errors import EarthLinguistError, format_error_line
from .workspace import Workspace


def setup_logging(verbose: bool = False):
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="earthlinguist",
        description="Manage EarthLinguist example tables and recording sessions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s examples
  %(prog)s record 2 --language Yoruba --country Nigeria
  %(prog)s annotate record 1 "a chair with four legs"
  %(prog)s export record --output-dir ~/Desktop
  %(prog)s import example_2_yoruba_nigeria.1.zip
  %(prog)s --examples my_examples.zip show 1
        """
    )

    parser.add_argument("--root", type=Path, default=None,
                        help="Storage root (default: $EARTHLINGUIST_HOME or ~/.earthlinguist)")
    parser.add_argument("--examples", type=Path, default=None, metavar="ZIP",
                        help="Use the examples in ZIP instead of the bundled ones")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable verbose logging")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("examples", help="List the available examples")

    show = sub.add_parser("show", help="Show the checkmark table of an example")
    show.add_argument("index", type=int)

    choices = sub.add_parser("choices", help="List the bundled languages or countries")
    choices.add_argument("kind", choices=["languages", "countries"])

    sub.add_parser("status", help="Show both sessions and their missing clips")

    validate = sub.add_parser("validate", help="Validate a session directory")
    validate.add_argument("directory", type=Path)

    imp = sub.add_parser("import", help="Load a session zip into the listening session")
    imp.add_argument("zip_file", type=Path)

    export = sub.add_parser("export", help="Save a session as a zip")
    export.add_argument("mode", choices=[m.value for m in SessionMode])
    export.add_argument("--output-dir", type=Path, default=Path.home())
    export.add_argument("--name", default=None, help="Base name of the zip file")

    reset = sub.add_parser("reset", help="Discard a session")
    reset.add_argument("mode", choices=[m.value for m in SessionMode])

    sub.add_parser("edit", help="Copy the listening session into the recording session")

    record = sub.add_parser("record", help="Start a new recording session")
    record.add_argument("example", type=int)
    record.add_argument("--language", default="")
    record.add_argument("--country", default="")
    record.add_argument("--region", default="")

    annotate = sub.add_parser("annotate", help="Set an annotation for a column")
    annotate.add_argument("mode", choices=[m.value for m in SessionMode])
    annotate.add_argument("column", type=int, help="1-based column number")
    annotate.add_argument("text")
    annotate.add_argument("--expert", action="store_true", help="Set the expert annotation")

    return parser


def render_table(workspace: Workspace, index: int) -> str:
    table = workspace.get_example(index)
    matrix = table.checkmark_matrix()
    header = "row  " + " ".join(f"{c:>2}" for c in range(1, table.columns + 1)) + "  image"
    lines = [f"Example {index}: {len(table)} rows x {table.columns} columns", header]
    for row_number, (row, marks) in enumerate(zip(table.rows, matrix), start=1):
        cells = " ".join(" x" if mark else " ." for mark in marks)
        lines.append(f"{row_number:>3}  {cells}  {Path(row.image_path).name}")
    return "\n".join(lines)


def print_problems(summary: dict) -> None:
    """Print collected warnings with the actions that may resolve them."""
    for entry in summary['warnings']:
        print(f"Warning: [{entry['code']}] {entry['message']}")
        for action in entry['suggested_actions']:
            print(f"  - {action}")


def run(args: argparse.Namespace, workspace: Workspace) -> int:
    logger = logging.getLogger(__name__)

    if args.command == "examples":
        for index in workspace.list_example_indices():
            table = workspace.get_example(index)
            print(f"{index}: {len(table)} rows x {table.columns} columns")

    elif args.command == "show":
        print(render_table(workspace, args.index))

    elif args.command == "choices":
        entries = load_languages() if args.kind == "languages" else load_countries()
        print("\n".join(entries))

    elif args.command == "status":
        for mode in SessionMode:
            state = workspace.load_session(mode)
            print(f"[{mode.value}] {state}")
            if state.selected_example in workspace.catalog:
                missing = workspace.missing_clips(mode)
                print(f"  missing clips: {', '.join(map(str, missing)) or 'none'}")
        summary = workspace.error_handler.get_error_summary()
        print(f"{summary['warning_count']} warning(s), {summary['error_count']} error(s)")

    elif args.command == "validate":
        state = workspace.validate(args.directory)
        print(f"Valid session for example {state.selected_example} ({state.selected_language})")

    elif args.command == "import":
        state = workspace.import_archive(args.zip_file)
        print(f"Loaded session for example {state.selected_example}")

    elif args.command == "export":
        path = workspace.export_session(SessionMode(args.mode), args.output_dir, args.name)
        print(f"Saved {path}")

    elif args.command == "reset":
        workspace.reset_session(SessionMode(args.mode))
        print(f"Reset the {args.mode} session")

    elif args.command == "edit":
        state = workspace.edit_loaded_session()
        print(f"Editing session for example {state.selected_example}")

    elif args.command == "record":
        state = workspace.start_recording(args.example, args.language, args.country, args.region)
        print(f"Recording example {state.selected_example}; clips go to "
              f"{workspace.session_dir(SessionMode.RECORD)}")

    elif args.command == "annotate":
        mode = SessionMode(args.mode)
        state = workspace.load_session(mode)
        if args.expert:
            state.set_expert_annotation(args.column - 1, args.text)
        else:
            state.set_user_annotation(args.column - 1, args.text)
        workspace.save_session(state, mode)
        logger.info(f"Annotated column {args.column} of the {mode.value} session")

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        workspace = Workspace(root=args.root)
        workspace.startup(examples_zip=args.examples)

        print_problems(workspace.error_handler.get_error_summary())

        return run(args, workspace)
    except EarthLinguistError as e:
        print(format_error_line(e), file=sys.stderr)
        logger.debug("Command failed", exc_info=True)
        return 1
    except (IndexError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
