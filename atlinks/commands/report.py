"""
Access Template Link reporting.

This module implements the 'report' command. For every value of the
selected filter (trustee, directory object or access template) it lists the
matching access template links, optionally with the decoded permissions of
their access templates, and optionally exports the report to HTML.
"""

import argparse
from typing import Any, Callable, Dict, List, Optional, Tuple

from ldap3.core.exceptions import LDAPException

from atlinks.lib.constants import DEFAULT_EXPORT_PATH
from atlinks.lib.decoder import DecodedPermission, PermissionDecoder
from atlinks.lib.errors import describe_ldap_error, handle_error
from atlinks.lib.export import (
    ReportSession,
    copy_to_clipboard,
    ensure_export_path,
)
from atlinks.lib.formatting import permissions_table, plural, print_indented, split_values
from atlinks.lib.ldap import LDAPConnection
from atlinks.lib.links import AccessTemplateLink, LinkQueryService
from atlinks.lib.logger import logging
from atlinks.lib.resolvers import DisplaySpecifierResolver, ExtendedRightResolver
from atlinks.lib.target import Target

TRUSTEE = "trustee"
DIRECTORY_OBJECT = "directory object"
ACCESS_TEMPLATE = "access template"

# Label width of link fields in console output
LABEL_WIDTH = 18


class Reporter:
    """
    Shared machinery of the commands that print and export reports.

    Holds the connection, the lookup services and the per-run cache of
    decoded access templates.
    """

    def __init__(
        self,
        target: Target,
        html: bool = False,
        export_path: Optional[str] = None,
        client_locale: bool = False,
        connection: Optional[LDAPConnection] = None,
        **kwargs,  # type: ignore
    ) -> None:
        """
        Args:
            target: Administration service connection details
            html: Export each report to an HTML file
            export_path: Directory for HTML files
            client_locale: Use the client locale for display specifiers
            connection: Optional existing connection to reuse
            **kwargs: Additional keyword arguments
        """
        self.target = target
        self.html = html
        self.export_path = export_path or DEFAULT_EXPORT_PATH
        self.client_locale = client_locale
        self.kwargs = kwargs

        self._connection = connection
        self._service: Optional[LinkQueryService] = None
        self._decoder: Optional[PermissionDecoder] = None
        self._decoded: Dict[str, Optional[List[DecodedPermission]]] = {}

    @property
    def connection(self) -> LDAPConnection:
        """
        Lazily establish and return the connection to the administration service.
        """
        if self._connection is not None:
            return self._connection

        connection = LDAPConnection(self.target)
        connection.connect()
        self._connection = connection

        return self._connection

    @property
    def service(self) -> LinkQueryService:
        if self._service is None:
            self._service = LinkQueryService(self.connection)
        return self._service

    @property
    def decoder(self) -> PermissionDecoder:
        if self._decoder is None:
            self._decoder = PermissionDecoder(
                DisplaySpecifierResolver(
                    self.connection, locale_aware=self.client_locale
                ),
                ExtendedRightResolver(self.connection),
            )
        return self._decoder

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()

    def decode_template(self, dn: str) -> Optional[List[DecodedPermission]]:
        """
        Decode the permissions of an access template, once per template and run.

        Args:
            dn: Distinguished name of the access template

        Returns:
            Decoded permissions, or None if the template does not exist
        """
        key = dn.lower()
        if key in self._decoded:
            return self._decoded[key]

        template = self.service.get_access_template(dn)
        if template is None:
            logging.warning(f"Access template {dn!r} not found")
            permissions = None
        else:
            logging.debug(f"Decoding permissions of access template {template.name!r}")
            permissions = self.decoder.decode(template.ace_list)

        self._decoded[key] = permissions
        return permissions

    # =========================================================================
    # Output
    # =========================================================================

    def emit_header(
        self, text: str, count: Optional[int], session: Optional[ReportSession]
    ) -> None:
        print(text)
        if session is not None:
            if count is None:
                session.summary(text)
            else:
                session.summary(f"{text}: {plural(count, 'link')}")

    def emit_link(
        self, fields: List[Tuple[str, str]], session: Optional[ReportSession]
    ) -> None:
        for label, value in fields:
            print(f"  {label.ljust(LABEL_WIDTH)}: {value}")
        if session is not None:
            session.link(fields)

    def emit_none(self, session: Optional[ReportSession]) -> None:
        print("  NONE")
        if session is not None:
            session.none()

    def emit_permissions(
        self, template_dn: str, session: Optional[ReportSession]
    ) -> None:
        permissions = self.decode_template(template_dn)
        if permissions is None:
            return

        print()
        print_indented(permissions_table(permissions), indent=4)
        print()
        if session is not None:
            session.permissions(permissions)

    def export(
        self, title: str, report: Callable[..., None], *args: Any
    ) -> Optional[str]:
        """
        Run one report, inside an HTML report session when export is enabled.

        Args:
            title: Title of the HTML document
            report: Callable taking the session (or None) followed by ``args``
            *args: Arguments passed to ``report``

        Returns:
            Path of the HTML file, or None when not exporting
        """
        if not self.html:
            report(None, *args)
            return None

        with ReportSession(self.export_path, title) as session:
            report(session, *args)

        logging.info(f"Wrote HTML report to {session.path!r}")
        if copy_to_clipboard(session.path):
            logging.info("Report path copied to clipboard")
        return session.path

    def run_values(
        self, kind: str, values: List[str], report: Callable[[str], bool]
    ) -> int:
        """
        Run a report for each value in order.

        A value that fails with a directory error is reported and skipped. The
        connection is closed when all values are done, whatever happened.

        Args:
            kind: Description of the values for log messages
            values: Values in the order given on the command line
            report: Callable taking one value, returning True on success

        Returns:
            Number of values reported successfully
        """
        if self.html:
            self.export_path = ensure_export_path(self.export_path)

        succeeded = 0
        try:
            # Fail early when the service is unreachable
            _ = self.connection

            for value in values:
                logging.debug(f"Processing {kind} {value!r}")
                try:
                    if report(value):
                        succeeded += 1
                except LDAPException as e:
                    logging.error(
                        f"Failed to report {kind} {value!r}: {describe_ldap_error(e)}"
                    )
                    handle_error()
        finally:
            self.close()

        return succeeded


class Report(Reporter):
    """
    Lists access template links by trustee, directory object or access template.
    """

    def __init__(
        self,
        target: Target,
        trustee: Optional[str] = None,
        access_template: Optional[str] = None,
        directory_object: Optional[str] = None,
        list_permissions: bool = False,
        **kwargs,  # type: ignore
    ) -> None:
        """
        Exactly one of ``trustee``, ``access_template`` and ``directory_object``
        must be given. Each may hold a comma-separated list of values.

        Args:
            target: Administration service connection details
            trustee: Trustee identities
            access_template: Access template names or DNs
            directory_object: Directory object identities
            list_permissions: Decode and print the permissions of each template
            **kwargs: Passed on to Reporter
        """
        super().__init__(target, **kwargs)

        self.trustee = trustee
        self.access_template = access_template
        self.directory_object = directory_object
        self.list_permissions = list_permissions

    def axis(self) -> Tuple[str, List[str]]:
        """
        Get the active filter axis and its values.

        Raises:
            ValueError: If not exactly one filter is given
        """
        axes = [
            (TRUSTEE, self.trustee),
            (ACCESS_TEMPLATE, self.access_template),
            (DIRECTORY_OBJECT, self.directory_object),
        ]
        active = [(name, value) for name, value in axes if value]
        if len(active) != 1:
            raise ValueError(
                "Exactly one of trustee, access template or directory object is required"
            )

        name, value = active[0]
        return name, split_values(value or "")

    def run(self) -> int:
        """
        Report every value of the active filter.

        Returns:
            Number of values reported successfully
        """
        kind, values = self.axis()

        report = {
            TRUSTEE: self.report_trustee,
            ACCESS_TEMPLATE: self.report_template,
            DIRECTORY_OBJECT: self.report_object,
        }[kind]

        return self.run_values(kind, values, report)

    def report_trustee(self, identity: str) -> bool:
        entry = self.service.find_object(identity)
        if entry is None:
            logging.error(f"Could not find trustee {identity!r}")
            return False

        sid = entry.get("objectSid")
        if not sid:
            logging.error(f"Trustee {identity!r} has no security identifier")
            return False

        links = self.service.links_for_trustee(str(sid))
        self.export(
            f"Access Template Links for trustee {identity}",
            self._print_links,
            f"Access Template Links for trustee {identity!r} ({entry.dn})",
            links,
            [
                ("Access Template", "access_template_dn"),
                ("Directory Object", "directory_object_dn"),
            ],
            None,
        )
        return True

    def report_object(self, identity: str) -> bool:
        entry = self.service.find_object(identity)
        if entry is None:
            logging.error(f"Could not find directory object {identity!r}")
            return False

        links = self.service.links_for_object(entry.dn)
        self.export(
            f"Access Template Links for directory object {identity}",
            self._print_links,
            f"Access Template Links for directory object {identity!r} ({entry.dn})",
            links,
            [("Trustee", "trustee"), ("Access Template", "access_template_dn")],
            None,
        )
        return True

    def report_template(self, identity: str) -> bool:
        template = self.service.find_access_template(identity)
        if template is None:
            logging.error(f"Could not find access template {identity!r}")
            return False

        links = self.service.links_for_template(template.dn)
        self.export(
            f"Access Template Links for access template {identity}",
            self._print_links,
            f"Access Template Links for access template {identity!r} ({template.dn})",
            links,
            [("Trustee", "trustee"), ("Directory Object", "directory_object_dn")],
            template.dn,
        )
        return True

    def _link_value(self, link: AccessTemplateLink, field: str) -> str:
        if field == "trustee":
            return self.service.resolve_trustee(link.trustee_sid)
        return getattr(link, field)

    def _print_links(
        self,
        session: Optional[ReportSession],
        header: str,
        links: List[AccessTemplateLink],
        fields: List[Tuple[str, str]],
        template_dn: Optional[str],
    ) -> None:
        """
        Print a header and the links, with permission tables if requested.

        Without ``template_dn`` a table follows each link. With it, the links
        all share that template and its table follows the last link.
        """
        self.emit_header(header, len(links), session)

        if not links:
            self.emit_none(session)
            print()
            return

        for link in links:
            self.emit_link(
                [(label, self._link_value(link, field)) for label, field in fields],
                session,
            )
            if self.list_permissions and template_dn is None:
                self.emit_permissions(link.access_template_dn, session)
            else:
                print()

        if self.list_permissions and template_dn is not None:
            self.emit_permissions(template_dn, session)


def entry(options: argparse.Namespace) -> None:
    """
    Entry point for the 'report' command.

    Args:
        options: Command-line arguments
    """
    target = Target.from_options(options)

    report = Report(target=target, **vars(options))
    report.run()
