"""
Parser for the access template link report command.

Exactly one filter (-trustee, -access-template or -directory-object) must be
given; argparse reports anything else as a usage error.
"""

import argparse
from typing import Callable, Tuple

from atlinks.lib.constants import DEFAULT_EXPORT_PATH

from . import target

NAME = "report"


def entry(options: argparse.Namespace) -> None:
    from atlinks.commands import report

    report.entry(options)


def add_output_arguments(parser: argparse.ArgumentParser) -> None:
    """
    Add the output and display options shared by the report commands.

    Args:
        parser: The parser to add the argument group to
    """
    output_group = parser.add_argument_group("output options")
    output_group.add_argument(
        "-html",
        action="store_true",
        help=(
            "Export each report to an HTML file. One file is written per filter value, "
            "and its path is copied to the clipboard"
        ),
    )
    output_group.add_argument(
        "-export-path",
        action="store",
        metavar="directory",
        default=DEFAULT_EXPORT_PATH,
        help=f"Directory for HTML reports, created if missing (default: {DEFAULT_EXPORT_PATH})",
    )
    output_group.add_argument(
        "-client-locale",
        action="store_true",
        help=(
            "Use display specifiers of the client's locale for class and attribute "
            "names, falling back to English (409) when the locale has none"
        ),
    )


def add_subparser(subparsers: argparse._SubParsersAction) -> Tuple[str, Callable]:  # type: ignore
    """
    Add the report command subparser to the main parser.

    Args:
        subparsers: Parent parser to attach the subparser to

    Returns:
        Tuple of (command_name, entry_function) for command registration
    """
    subparser = subparsers.add_parser(
        NAME,
        help="Report access template links",
        description=(
            "List the Access Template Links of trustees, directory objects or access "
            "templates, optionally with the permissions each access template grants."
        ),
    )

    filter_group = subparser.add_argument_group(
        "filter options", "Exactly one filter is required"
    )
    filters = filter_group.add_mutually_exclusive_group(required=True)
    filters.add_argument(
        "-trustee",
        action="store",
        metavar="identity[,identity...]",
        help="Trustees (users or groups) whose links to report",
    )
    filters.add_argument(
        "-access-template",
        action="store",
        metavar="name[,name...]",
        help="Access templates whose links to report",
    )
    filters.add_argument(
        "-directory-object",
        action="store",
        metavar="identity[,identity...]",
        help=(
            "Directory objects whose links to report. "
            "Separate several distinguished names with ';'"
        ),
    )

    subparser.add_argument(
        "-list-permissions",
        action="store_true",
        help="Decode and list the permissions of each access template",
    )

    add_output_arguments(subparser)
    target.add_argument_group(subparser)

    return NAME, entry
