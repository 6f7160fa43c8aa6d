"""
Access template links stored by the Active Roles administration service.

An access template link binds an access template to a trustee and a
directory object. This module looks up the identities used as report
filters and enumerates the links matching one of them.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from impacket.ldap.ldaptypes import LDAP_SID
from ldap3.utils.conv import escape_bytes, escape_filter_chars

from atlinks.lib.constants import (
    ACCESS_TEMPLATE_CLASS,
    ACCESS_TEMPLATE_LINK_CLASS,
    ACCESS_TEMPLATE_LINKS_PATH,
    ACCESS_TEMPLATES_PATH,
    LINK_ACCESS_TEMPLATE,
    LINK_DIRECTORY_OBJECT,
    LINK_TRUSTEE_SID,
    TEMPLATE_ACE_LIST,
)
from atlinks.lib.ldap import LDAPConnection, LDAPEntry
from atlinks.lib.logger import logging

DN_PATTERN = re.compile(r"^\s*[A-Za-z][\w-]*=.+")
SID_PATTERN = re.compile(r"^S-1-\d+(-\d+)+$", re.IGNORECASE)

OBJECT_ATTRIBUTES = [
    "distinguishedName",
    "objectSid",
    "objectClass",
    "name",
    "sAMAccountName",
]


@dataclass(frozen=True)
class AccessTemplateLink:
    """
    A (trustee, directory object, access template) triple.
    """

    dn: str
    trustee_sid: str
    directory_object_dn: str
    access_template_dn: str


@dataclass(frozen=True)
class AccessTemplate:
    """
    An access template and its effective ACE list.
    """

    dn: str
    name: str
    ace_list: str


def is_dn(identity: str) -> bool:
    return bool(DN_PATTERN.match(identity))


def is_sid(identity: str) -> bool:
    return bool(SID_PATTERN.match(identity.strip()))


def sid_to_string(value: Any) -> str:
    """
    Convert a SID attribute value to its canonical string form.

    Args:
        value: Binary SID or an already formatted SID string

    Returns:
        SID in S-1-... form
    """
    if isinstance(value, (bytes, bytearray)):
        if value.upper().startswith(b"S-1-"):
            return bytes(value).decode("ascii")
        return LDAP_SID(data=bytes(value)).formatCanonical()
    return str(value)


def sid_filter_value(sid: str) -> str:
    """
    Encode a SID string for matching a binary SID attribute in a filter.

    Args:
        sid: SID in S-1-... form

    Returns:
        Escaped binary SID
    """
    binary_sid = LDAP_SID()
    binary_sid.fromCanonical(sid.strip().upper())
    return escape_bytes(binary_sid.getData())


class LinkQueryService:
    """
    Lookups of directory objects, access templates and their links.
    """

    def __init__(self, connection: LDAPConnection) -> None:
        self.connection = connection
        self._templates: Dict[str, Optional[AccessTemplate]] = {}

    # =========================================================================
    # Identity lookups
    # =========================================================================

    def find_object(self, identity: str) -> Optional[LDAPEntry]:
        """
        Find a directory object by DN, SID, user principal name, account name or name.

        Args:
            identity: Identity as given on the command line

        Returns:
            The object, or None if the identity does not resolve to exactly one object
        """
        identity = identity.strip()

        if is_dn(identity):
            return self.connection.get_entry(identity, attributes=OBJECT_ATTRIBUTES)

        if is_sid(identity):
            search_filter = f"(objectSid={escape_filter_chars(identity.upper())})"
        else:
            # DOMAIN\account form
            name = escape_filter_chars(identity.split("\\")[-1])
            search_filter = (
                f"(|(sAMAccountName={name})(userPrincipalName={name})"
                f"(name={name})(cn={name}))"
            )

        results = self.connection.search(search_filter, attributes=OBJECT_ATTRIBUTES)

        if len(results) > 1:
            logging.error(
                f"Identity {identity!r} is ambiguous: {len(results)} objects match"
            )
            for result in results:
                logging.debug(f"  {result.dn}")
            return None

        if not results:
            return None

        return results[0]

    def resolve_trustee(self, sid: str) -> str:
        """
        Get the distinguished name of a trustee, or its SID if it cannot be found.
        """
        entry = self.connection.lookup_sid(sid)
        return entry.dn or sid

    # =========================================================================
    # Access templates
    # =========================================================================

    def get_access_template(self, dn: str) -> Optional[AccessTemplate]:
        """
        Fetch an access template and its ACE list by distinguished name.

        Templates are cached for the lifetime of the service object.

        Args:
            dn: Distinguished name of the access template

        Returns:
            The access template, or None if it does not exist
        """
        key = dn.lower()
        if key in self._templates:
            return self._templates[key]

        entry = self.connection.get_entry(
            dn, attributes=["name", "cn", TEMPLATE_ACE_LIST]
        )

        template = None
        if entry is not None:
            template = _template_from_entry(entry, dn)

        self._templates[key] = template
        return template

    def find_access_template(self, identity: str) -> Optional[AccessTemplate]:
        """
        Find an access template by DN or name.

        Args:
            identity: DN, cn, name or display name of the access template

        Returns:
            The access template, or None if it does not resolve to exactly one template
        """
        identity = identity.strip()

        if is_dn(identity):
            return self.get_access_template(identity)

        name = escape_filter_chars(identity)
        results = self.connection.search(
            f"(&(objectClass={ACCESS_TEMPLATE_CLASS})"
            f"(|(cn={name})(name={name})(displayName={name})))",
            attributes=["name", "cn", TEMPLATE_ACE_LIST],
            search_base=ACCESS_TEMPLATES_PATH,
        )

        if len(results) > 1:
            logging.error(
                f"Access template {identity!r} is ambiguous: {len(results)} templates match"
            )
            return None

        if not results:
            return None

        template = _template_from_entry(results[0], results[0].dn)
        self._templates[template.dn.lower()] = template
        return template

    # =========================================================================
    # Link enumeration
    # =========================================================================

    def links_for_trustee(self, sid: str) -> List[AccessTemplateLink]:
        return self._links(f"({LINK_TRUSTEE_SID}={sid_filter_value(sid)})")

    def links_for_object(self, dn: str) -> List[AccessTemplateLink]:
        return self._links(f"({LINK_DIRECTORY_OBJECT}={escape_filter_chars(dn)})")

    def links_for_template(self, dn: str) -> List[AccessTemplateLink]:
        return self._links(f"({LINK_ACCESS_TEMPLATE}={escape_filter_chars(dn)})")

    def _links(self, condition: str) -> List[AccessTemplateLink]:
        results = self.connection.search(
            f"(&(objectClass={ACCESS_TEMPLATE_LINK_CLASS}){condition})",
            attributes=[LINK_TRUSTEE_SID, LINK_DIRECTORY_OBJECT, LINK_ACCESS_TEMPLATE],
            search_base=ACCESS_TEMPLATE_LINKS_PATH,
        )

        links = []
        for entry in results:
            trustee = entry.get_raw(LINK_TRUSTEE_SID)
            if trustee:
                trustee = trustee[0] if isinstance(trustee, list) else trustee
            else:
                trustee = entry.get(LINK_TRUSTEE_SID, "")

            links.append(
                AccessTemplateLink(
                    dn=entry.dn,
                    trustee_sid=sid_to_string(trustee) if trustee else "",
                    directory_object_dn=str(entry.get(LINK_DIRECTORY_OBJECT, "")),
                    access_template_dn=str(entry.get(LINK_ACCESS_TEMPLATE, "")),
                )
            )

        logging.debug(f"Found {len(links)} link(s) matching {condition!r}")
        return links


def _template_from_entry(entry: LDAPEntry, dn: str) -> AccessTemplate:
    ace_list = entry.get(TEMPLATE_ACE_LIST, "")
    if isinstance(ace_list, list):
        ace_list = "".join(str(value) for value in ace_list)
    elif isinstance(ace_list, bytes):
        ace_list = ace_list.decode("utf-8", errors="replace")

    name = entry.get("name") or entry.get("cn") or dn
    return AccessTemplate(dn=dn, name=str(name), ace_list=str(ace_list))
