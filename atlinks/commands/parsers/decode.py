"""
Parser for the access template permission command.
"""

import argparse
from typing import Callable, Tuple

from . import target
from .report import add_output_arguments

NAME = "decode"


def entry(options: argparse.Namespace) -> None:
    from atlinks.commands import decode

    decode.entry(options)


def add_subparser(subparsers: argparse._SubParsersAction) -> Tuple[str, Callable]:  # type: ignore
    """
    Add the decode command subparser to the main parser.

    Args:
        subparsers: Parent parser to attach the subparser to

    Returns:
        Tuple of (command_name, entry_function) for command registration
    """
    subparser = subparsers.add_parser(
        NAME,
        help="List the permissions of access templates",
        description=(
            "Decode the effective permission list of access templates into "
            "readable permissions, without enumerating their links."
        ),
    )

    subparser.add_argument(
        "-access-template",
        action="store",
        metavar="name[,name...]",
        required=True,
        help="Access templates to decode",
    )

    add_output_arguments(subparser)
    target.add_argument_group(subparser)

    return NAME, entry
