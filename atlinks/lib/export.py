"""
HTML export of reports.

Each top-level filter value gets its own ReportSession: one HTML file that
is started with a single write of the document head and then extended in
append mode until the session closes.
"""

import html
import os
import uuid
from datetime import datetime
from types import TracebackType
from typing import IO, Iterable, List, Optional, Tuple, Type

import pyperclip

from atlinks.lib.decoder import DecodedPermission
from atlinks.lib.formatting import permissions_table
from atlinks.lib.logger import logging

HTML_HEAD = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
body {{ font-family: "Segoe UI", Arial, sans-serif; font-size: 13px; color: #1a202c; margin: 2em; }}
h1 {{ font-size: 18px; border-bottom: 2px solid #2b6cb0; padding-bottom: 4px; }}
p.summary {{ font-weight: bold; }}
p.none {{ color: #718096; font-style: italic; }}
hr {{ border: 0; border-top: 1px solid #cbd5e0; margin: 1em 0; }}
dl.link dt {{ font-weight: bold; float: left; clear: left; width: 11em; }}
dl.link dd {{ margin-left: 11em; }}
table {{ border-collapse: collapse; margin: 0.5em 0 1em 0; }}
th, td {{ border: 1px solid #cbd5e0; padding: 3px 8px; text-align: left; }}
th {{ background-color: #ebf4ff; }}
</style>
</head>
<body>
<h1>{title}</h1>
"""

HTML_FOOT = """<p class="generated">Generated {generated}</p>
</body>
</html>
"""


def ensure_export_path(path: str) -> str:
    """
    Create the export directory if it does not exist.

    Args:
        path: Export directory

    Returns:
        Absolute path of the directory
    """
    path = os.path.abspath(os.path.expanduser(path))
    if not os.path.isdir(path):
        logging.debug(f"Creating export directory {path!r}")
        os.makedirs(path, exist_ok=True)
    return path


def unique_report_path(export_path: str, prefix: str = "ATLinks") -> str:
    """
    Build a timestamp-derived file name that does not exist yet.

    Args:
        export_path: Export directory
        prefix: File name prefix

    Returns:
        Full path of the new report file
    """
    stamp = datetime.now().strftime("%Y%m%d%H%M%S%f")
    path = os.path.join(export_path, f"{prefix}_{stamp}.html")
    if os.path.exists(path):
        path = os.path.join(export_path, f"{prefix}_{stamp}_{uuid.uuid4()}.html")
        logging.debug(f"Using alternative filename: {path!r}")
    return path


def copy_to_clipboard(text: str) -> bool:
    """
    Copy text to the clipboard.

    Args:
        text: Text to copy

    Returns:
        True if the text was copied
    """
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        logging.warning(f"Could not copy to clipboard: {e}")
        return False
    return True


class ReportSession:
    """
    Owns the HTML file of one report for the duration of a `with` block.
    """

    def __init__(self, export_path: str, title: str, prefix: str = "ATLinks") -> None:
        """
        Args:
            export_path: Existing export directory
            title: Document title
            prefix: File name prefix
        """
        self.title = title
        self.path = unique_report_path(export_path, prefix)
        self._handle: Optional[IO[str]] = None

    def __enter__(self) -> "ReportSession":
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(HTML_HEAD.format(title=html.escape(self.title)))

        self._handle = open(self.path, "a", encoding="utf-8")
        logging.debug(f"Writing HTML report to {self.path!r}")
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        if self._handle is None:
            return

        try:
            self._handle.write(
                HTML_FOOT.format(
                    generated=html.escape(datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
                )
            )
        finally:
            self._handle.close()
            self._handle = None

    @property
    def closed(self) -> bool:
        return self._handle is None

    def write(self, fragment: str) -> None:
        if self._handle is None:
            raise ValueError(f"Report session {self.path!r} is not open")
        self._handle.write(fragment)
        self._handle.write("\n")

    def summary(self, text: str) -> None:
        self.write(f'<p class="summary">{html.escape(text)}</p>')

    def link(self, fields: List[Tuple[str, str]]) -> None:
        """
        Write one link entry, preceded by a horizontal rule.

        Args:
            fields: (label, value) pairs of the entry
        """
        items = "".join(
            f"<dt>{html.escape(label)}</dt><dd>{html.escape(value)}</dd>"
            for label, value in fields
        )
        self.write(f'<hr>\n<dl class="link">{items}</dl>')

    def none(self) -> None:
        self.write('<p class="none">NONE</p>')

    def permissions(self, permissions: Iterable[DecodedPermission]) -> None:
        self.write(permissions_table(permissions, tablefmt="html"))
