"""
Access template permission listing.

This module implements the 'decode' command, which prints the decoded
permissions of access templates without enumerating their links.
"""

import argparse
from typing import Optional

from atlinks.commands.report import Reporter
from atlinks.lib.export import ReportSession
from atlinks.lib.formatting import split_values
from atlinks.lib.links import AccessTemplate
from atlinks.lib.logger import logging
from atlinks.lib.target import Target


class Decode(Reporter):
    """
    Prints the permissions granted by access templates.
    """

    def __init__(
        self,
        target: Target,
        access_template: str = "",
        **kwargs,  # type: ignore
    ) -> None:
        super().__init__(target, **kwargs)
        self.access_template = access_template

    def run(self) -> int:
        values = split_values(self.access_template or "")
        if not values:
            logging.error("An access template (-access-template) is required")
            return 0

        return self.run_values("access template", values, self.decode)

    def decode(self, identity: str) -> bool:
        template = self.service.find_access_template(identity)
        if template is None:
            logging.error(f"Could not find access template {identity!r}")
            return False

        self.export(
            f"Permissions of access template {template.name}",
            self._print_template,
            template,
        )
        return True

    def _print_template(
        self, session: Optional[ReportSession], template: AccessTemplate
    ) -> None:
        self.emit_header(
            f"Permissions of access template {template.name!r} ({template.dn})",
            None,
            session,
        )
        self.emit_permissions(template.dn, session)


def entry(options: argparse.Namespace) -> None:
    """
    Entry point for the 'decode' command.

    Args:
        options: Command-line arguments
    """
    target = Target.from_options(options)

    decode = Decode(target=target, **vars(options))
    decode.run()
