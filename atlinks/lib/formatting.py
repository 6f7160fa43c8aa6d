"""
Formatting utilities for atlinks.

Decoded permissions are rendered as tables with tabulate, either as plain
text for the console or as HTML fragments for exported reports.
"""

from typing import Iterable, List

from tabulate import tabulate

from atlinks.lib.decoder import DecodedPermission

PERMISSION_HEADERS = ["Type", "Permissions", "ApplyTo"]


def permissions_table(
    permissions: Iterable[DecodedPermission], tablefmt: str = "simple"
) -> str:
    """
    Render decoded permissions as a table.

    Args:
        permissions: Decoded permissions in display order
        tablefmt: tabulate table format ("simple" for console, "html" for export)

    Returns:
        The rendered table
    """
    rows = [permission.to_row() for permission in permissions]
    return str(tabulate(rows, headers=PERMISSION_HEADERS, tablefmt=tablefmt))


def print_indented(text: str, indent: int = 2) -> None:
    """
    Print a multi-line block with every line indented.

    Args:
        text: Block to print
        indent: Number of spaces to indent by
    """
    for line in text.splitlines():
        print(f"{' ' * indent}{line}".rstrip())


def plural(count: int, word: str, suffix: str = "s") -> str:
    """
    Format a count with a word in singular or plural form.

    Example:
        >>> plural(2, "link")
        '2 links'
    """
    return f"{count} {word}{suffix if count != 1 else ''}"


def split_values(value: str) -> List[str]:
    """
    Split a comma-separated command line value, dropping empty items.

    Distinguished names contain commas too, so a value that looks like a
    single DN is kept whole; separate several DNs with ';'.
    """
    if ";" in value:
        return [item.strip() for item in value.split(";") if item.strip()]

    if "=" in value:
        return [value.strip()] if value.strip() else []

    return [item.strip() for item in value.split(",") if item.strip()]
