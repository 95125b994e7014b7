"""
albumseq CLI - Command Line Interface

Sub-commands operate on a SQLite context file:
    albumseq init
    albumseq add-tracklist --name "My Album" --tracks "Song1:3:45" "Song2:4:10"
    albumseq add-medium --name Vinyl --sides 2 --max-duration 22:00
    albumseq add-constraint --kind adjacent --args Song1 Song2 --weight 2
    albumseq remove-constraint --index 0
    albumseq show --filter constraints
    albumseq propose --tracklist "My Album" --medium Vinyl --count 10 --min-score 5
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import Config, ConfigError
from .db import ContextError, ContextStore
from .library import tracklist_from_directory
from .models import Medium, Tracklist, parse_duration, parse_tracks
from .report import SHOW_FILTERS, render_context, render_proposals
from .sequence.constraints import CONSTRAINT_KINDS, ConstraintError, parse_constraint
from .sequence.search import InvalidInputError, SearchSettings, propose

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"


def create_parser() -> argparse.ArgumentParser:
    """
    Create argument parser for CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="albumseq",
        description="Sequence a tracklist onto the sides of a vinyl, cassette or CD",
        epilog=(
            'Example: albumseq propose --tracklist "My Album" --medium Vinyl --count 10'
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--context",
        "-c",
        type=str,
        default=None,
        metavar="FILE",
        help="Path to the context file (default: [context] path from config, context.sqlite)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        metavar="FILE",
        help="Path to albumseq.toml (default: $ALBUMSEQ_CONFIG_PATH or ./albumseq.toml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    commands.add_parser("init", help="Initialize a new context file")

    add_tracklist = commands.add_parser("add-tracklist", help="Add or replace a named tracklist")
    add_tracklist.add_argument("--name", "-n", required=True, help="Name of the tracklist")
    source = add_tracklist.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--tracks",
        "-t",
        nargs="+",
        metavar="TITLE:DURATION",
        help='Tracks as "Title:Duration" (MM:SS or decimal minutes)',
    )
    source.add_argument(
        "--from-dir",
        metavar="DIR",
        help="Read tracks (title tag, length) from audio files below DIR",
    )

    add_medium = commands.add_parser("add-medium", help="Add or replace a named medium")
    add_medium.add_argument("--name", "-n", required=True, help="Name of the medium")
    add_medium.add_argument("--sides", "-s", type=int, required=True, help="Number of sides")
    add_medium.add_argument(
        "--max-duration",
        "-d",
        required=True,
        help="Max duration per side (MM:SS or decimal minutes)",
    )

    add_constraint = commands.add_parser("add-constraint", help="Add a constraint")
    add_constraint.add_argument(
        "--kind",
        "-k",
        required=True,
        help=f"Constraint kind: {', '.join(CONSTRAINT_KINDS)}",
    )
    add_constraint.add_argument(
        "--args",
        "-a",
        nargs="+",
        default=[],
        help="Arguments depending on kind (e.g. title pos, title1 title2, title side)",
    )
    add_constraint.add_argument(
        "--weight",
        "-w",
        type=float,
        default=1.0,
        help="Weight of the constraint; negative values penalise (default: 1)",
    )

    remove_constraint = commands.add_parser(
        "remove-constraint", help="Remove a constraint by index (later indices shift down)"
    )
    remove_constraint.add_argument("--index", "-i", type=int, required=True)

    show = commands.add_parser("show", help="Show the context or parts of it")
    show.add_argument(
        "--filter",
        "-f",
        choices=SHOW_FILTERS,
        default="all",
        help="What to show (default: all)",
    )

    propose_cmd = commands.add_parser(
        "propose", help="Propose top scoring layouts of a tracklist on a medium"
    )
    propose_cmd.add_argument("--tracklist", "-t", required=True, help="Tracklist name")
    propose_cmd.add_argument("--medium", "-m", required=True, help="Medium name")
    propose_cmd.add_argument(
        "--count",
        "-n",
        type=int,
        default=None,
        help="Number of proposals to show (default: [propose] default_count)",
    )
    propose_cmd.add_argument(
        "--min-score",
        type=float,
        default=None,
        help="Minimum score to include (optional)",
    )

    return parser


def _open_store(args: argparse.Namespace, config: Config, create: bool) -> ContextStore:
    path = args.context or config.get("context", "path", "context.sqlite")
    store = ContextStore(path)
    store.connect(create=create)
    return store


def cmd_init(args: argparse.Namespace, config: Config) -> int:
    path = args.context or config.get("context", "path", "context.sqlite")
    store = ContextStore(path)
    if store.exists():
        raise ContextError(f"Context file already exists at {path}")

    store.connect()
    store.disconnect()
    print(f"Created new context at {path}")
    return 0


def cmd_add_tracklist(args: argparse.Namespace, config: Config) -> int:
    if args.from_dir:
        tracklist = tracklist_from_directory(args.name, args.from_dir)
    else:
        tracklist = Tracklist(args.name, parse_tracks(args.tracks))

    if not tracklist.tracks:
        logger.error(f"Tracklist '{args.name}' has no valid tracks; nothing stored")
        return 1

    duplicates = tracklist.duplicate_names()
    if duplicates:
        logger.error(f"Track names must be unique, repeated: {', '.join(duplicates)}")
        return 1

    with _open_store(args, config, create=True) as store:
        replaced = store.add_or_replace_tracklist(tracklist)

    print(
        f"{'Replaced' if replaced else 'Added'} tracklist '{tracklist.name}' "
        f"({len(tracklist)} tracks, {tracklist.total_duration})"
    )
    return 0


def cmd_add_medium(args: argparse.Namespace, config: Config) -> int:
    if args.sides < 1:
        raise InvalidInputError(f"A medium needs at least one side (got {args.sides})")

    medium = Medium(args.name, args.sides, parse_duration(args.max_duration))

    with _open_store(args, config, create=True) as store:
        replaced = store.add_or_replace_medium(medium)

    print(
        f"{'Replaced' if replaced else 'Added'} medium '{medium.name}' "
        f"({medium.sides} sides x {medium.max_duration_per_side})"
    )
    return 0


def cmd_add_constraint(args: argparse.Namespace, config: Config) -> int:
    constraint = parse_constraint(args.kind, args.args, args.weight)

    with _open_store(args, config, create=True) as store:
        index, replaced = store.add_or_replace_constraint(constraint)

    print(f"{'Replaced' if replaced else 'Added'} constraint [{index}] {constraint}")
    return 0


def cmd_remove_constraint(args: argparse.Namespace, config: Config) -> int:
    with _open_store(args, config, create=False) as store:
        removed = store.remove_constraint(args.index)

    if removed is None:
        logger.error(f"Constraint index {args.index} out of range")
        return 1

    print(f"Removed constraint at index {args.index}: {removed}")
    return 0


def cmd_show(args: argparse.Namespace, config: Config) -> int:
    with _open_store(args, config, create=False) as store:
        logger.debug(f"Context stats: {store.get_stats()}")
        output = render_context(
            store.list_tracklists(),
            store.list_media(),
            store.list_constraints(),
            args.filter,
        )
    print(output)
    return 0


def cmd_propose(args: argparse.Namespace, config: Config) -> int:
    count = args.count if args.count is not None else config.get("propose", "default_count", 15)

    with _open_store(args, config, create=False) as store:
        tracklist = store.get_tracklist(args.tracklist)
        medium = store.get_medium(args.medium)
        constraints = store.list_constraints()

    if tracklist is None:
        logger.error(f"Tracklist '{args.tracklist}' not found")
        return 1
    if medium is None:
        logger.error(f"Medium '{args.medium}' not found")
        return 1

    results = propose(
        tracklist,
        medium,
        constraints,
        count,
        min_score=args.min_score,
        settings=SearchSettings(config["propose"]),
    )

    print(render_proposals(results, tracklist.name, medium.name, count, args.min_score))
    return 0


COMMANDS = {
    "init": cmd_init,
    "add-tracklist": cmd_add_tracklist,
    "add-medium": cmd_add_medium,
    "add-constraint": cmd_add_constraint,
    "remove-constraint": cmd_remove_constraint,
    "show": cmd_show,
    "propose": cmd_propose,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code (0 success, 1 failure, 130 interrupted)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)
    logging.getLogger("albumseq").setLevel(logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = Config.load(args.config)
        return COMMANDS[args.command](args, config)

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130
    except (ConfigError, ContextError, ConstraintError, InvalidInputError, ValueError) as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
