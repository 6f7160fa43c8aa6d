"""
LDAP access to the Active Roles administration service.

This module provides:
- LDAPEntry: dictionary-like search result with attribute helpers
- LDAPConnection: connection, bind and search operations on the service

The administration service exposes both the managed directory and its own
configuration namespace (access templates, links, display specifiers) over
LDAP, so a single connection serves every lookup made by atlinks.
"""

import ssl
from typing import Any, Dict, List, Optional, Union

import ldap3
from ldap3.core.exceptions import LDAPException
from ldap3.core.results import (
    RESULT_INVALID_CREDENTIALS,
    RESULT_NO_SUCH_OBJECT,
    RESULT_STRONGER_AUTH_REQUIRED,
    RESULT_SUCCESS,
)
from ldap3.utils.conv import escape_filter_chars

from atlinks.lib.errors import ServiceUnavailableError, describe_ldap_error
from atlinks.lib.logger import logging
from atlinks.lib.target import Target


class LDAPEntry(Dict[str, Any]):
    """
    Dictionary-like class representing an LDAP entry with helper methods.

    Entries keep the shape returned by ldap3 (``dn``, ``attributes`` and
    ``raw_attributes`` keys).
    """

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get an attribute value, treating missing attributes and empty lists alike.

        Args:
            key: Attribute name to retrieve
            default: Value to return if attribute is missing or empty (default: None)

        Returns:
            Attribute value if present and not empty, otherwise the default value
        """
        if key not in self.__getitem__("attributes").keys():
            return default

        item = self.__getitem__("attributes").__getitem__(key)

        if isinstance(item, list) and len(item) == 0:
            return default

        return item

    def get_raw(self, key: str) -> Any:
        """
        Get the raw (unprocessed) attribute value from the LDAP entry.

        Args:
            key: Attribute name to retrieve

        Returns:
            Raw attribute value or None if not present
        """
        if "raw_attributes" not in self or key not in self["raw_attributes"]:
            return None

        return self.__getitem__("raw_attributes").__getitem__(key)

    @property
    def dn(self) -> str:
        return self.__getitem__("dn") if "dn" in self else ""


class LDAPConnection:
    """
    Manages the connection to the administration service and the searches run on it.
    """

    def __init__(self, target: Target) -> None:
        """
        Initialize an LDAP connection with the specified target.

        Args:
            target: Target object containing connection details
        """
        self.target = target
        self.use_ssl = target.ldap_scheme == "ldaps"

        if self.use_ssl:
            self.port = int(target.ldap_port) if target.ldap_port is not None else 636
        else:
            self.port = int(target.ldap_port) if target.ldap_port is not None else 389

        self.default_path: Optional[str] = None
        self.configuration_path: Optional[str] = None
        self.schema_path: Optional[str] = None
        self.ldap_server: Optional[ldap3.Server] = None
        self.ldap_conn: Optional[ldap3.Connection] = None

        self.sid_map: Dict[str, LDAPEntry] = {}

    def connect(self) -> None:
        """
        Connect and bind to the administration service.

        NTLM is used unless SIMPLE bind was requested.

        Raises:
            ServiceUnavailableError: If the service cannot be reached or bound
        """
        if self.target.target_ip is None:
            raise ServiceUnavailableError("Administration service address is not set")

        user = f"{self.target.domain}\\{self.target.username}"
        user_upn = f"{self.target.username}@{self.target.domain}"

        if self.use_ssl:
            tls = ldap3.Tls(
                validate=ssl.CERT_NONE,
                version=ssl.PROTOCOL_TLS_CLIENT,
            )
            ldap_server = ldap3.Server(
                self.target.target_ip,
                use_ssl=True,
                port=self.port,
                get_info=ldap3.ALL,
                tls=tls,
                connect_timeout=self.target.timeout,
            )
        else:
            ldap_server = ldap3.Server(
                self.target.target_ip,
                use_ssl=False,
                port=self.port,
                get_info=ldap3.ALL,
                connect_timeout=self.target.timeout,
            )

        auth_method = "SIMPLE" if self.target.do_simple else "NTLM"
        logging.debug(
            f"Authenticating to {self.target.ldap_scheme}://{self.target.target_ip}:{self.port} "
            f"using {auth_method} authentication"
        )

        if self.target.nthash:
            ldap_pass = f"{self.target.lmhash}:{self.target.nthash}"
        else:
            ldap_pass = self.target.password

        try:
            ldap_conn = ldap3.Connection(
                ldap_server,
                user=user_upn if self.target.do_simple else user,
                password=ldap_pass,
                authentication=ldap3.SIMPLE if self.target.do_simple else ldap3.NTLM,
                auto_referrals=False,
                receive_timeout=self.target.timeout * 10,
            )

            if not ldap_conn.bind():
                self._check_ldap_result(ldap_conn.result)
        except LDAPException as e:
            raise ServiceUnavailableError(
                f"Failed to connect to administration service at "
                f"{self.target.target_ip!r}: {describe_ldap_error(e)}"
            ) from e

        logging.debug(f"Bound to {ldap_server}")

        self.ldap_conn = ldap_conn
        self.ldap_server = ldap_server

        info = ldap_server.info
        if info is not None:
            self.default_path = _first(info.other.get("defaultNamingContext"))
            self.configuration_path = _first(
                info.other.get("configurationNamingContext")
            )
            self.schema_path = _first(info.other.get("schemaNamingContext"))
        if self.configuration_path is None:
            logging.warning(
                "Service did not report a configuration naming context. "
                "Extended rights will not be resolved"
            )

        logging.debug(f"Default path: {self.default_path}")
        logging.debug(f"Configuration path: {self.configuration_path}")
        logging.debug(f"Schema path: {self.schema_path}")

    def _check_ldap_result(self, result: Dict[str, Any]) -> None:
        """
        Turn a failed bind result into an exception with a useful message.

        Args:
            result: Result dictionary from the LDAP bind operation

        Raises:
            ServiceUnavailableError: If the bind did not succeed
        """
        if result["result"] == RESULT_SUCCESS:
            return

        if result["result"] == RESULT_INVALID_CREDENTIALS:
            raise ServiceUnavailableError(
                f"Administration service refused the credentials: {result['message']}"
            )
        if result["result"] == RESULT_STRONGER_AUTH_REQUIRED:
            raise ServiceUnavailableError(
                "Administration service requires a protected connection. "
                "Try '-ldap-scheme ldaps'"
            )
        raise ServiceUnavailableError(f"Failed to bind: {result}")

    def close(self) -> None:
        """Unbind from the service. Safe to call when not connected."""
        if self.ldap_conn is None:
            return

        try:
            self.ldap_conn.unbind()
            logging.debug("Disconnected from administration service")
        except LDAPException as e:
            logging.warning(f"Failed to disconnect cleanly: {describe_ldap_error(e)}")
        finally:
            self.ldap_conn = None

    def search(
        self,
        search_filter: str,
        attributes: Union[str, List[str]] = ldap3.ALL_ATTRIBUTES,
        search_base: Optional[str] = None,
        silent: bool = False,
        **kwargs: Any,
    ) -> List[LDAPEntry]:
        """
        Search the service and return matching entries.

        Args:
            search_filter: LDAP search filter string
            attributes: List of attributes to retrieve or ldap3.ALL_ATTRIBUTES
            search_base: Base DN for the search, defaults to the domain base
            silent: Don't warn when the search fails because the base is missing
            **kwargs: Additional arguments for the search operation

        Returns:
            List of matching LDAP entries

        Raises:
            ServiceUnavailableError: If the connection is not established
        """
        if search_base is None:
            search_base = self.default_path

        if self.ldap_conn is None:
            raise ServiceUnavailableError("LDAP connection is not established")

        results = list(
            self.ldap_conn.extend.standard.paged_search(
                search_base=search_base,
                search_filter=search_filter,
                attributes=attributes,
                paged_size=200,
                generator=True,
                **kwargs,
            )
        )

        result = self.ldap_conn.result
        if result is not None and result["result"] != RESULT_SUCCESS:
            if not (silent and result["result"] == RESULT_NO_SUCH_OBJECT):
                logging.warning(
                    f"LDAP search {search_filter!r} failed: "
                    f"({result['description']}) {result['message']}"
                )
            return []

        return [
            LDAPEntry(**entry)
            for entry in results
            if entry["type"] == "searchResEntry"
        ]

    def get_entry(
        self, dn: str, attributes: Union[str, List[str]] = ldap3.ALL_ATTRIBUTES
    ) -> Optional[LDAPEntry]:
        """
        Fetch a single object by distinguished name.

        Args:
            dn: Distinguished name of the object
            attributes: Attributes to retrieve

        Returns:
            The entry, or None if the object does not exist
        """
        results = self.search(
            "(objectClass=*)",
            attributes=attributes,
            search_base=dn,
            search_scope=ldap3.BASE,
            silent=True,
        )

        if len(results) != 1:
            return None

        return results[0]

    def lookup_sid(self, sid: str) -> LDAPEntry:
        """
        Look up a security principal by SID.

        Unknown SIDs produce a synthetic entry named after the SID itself.

        Args:
            sid: Security identifier to look up

        Returns:
            LDAPEntry for the principal
        """
        if sid in self.sid_map:
            return self.sid_map[sid]

        results = self.search(
            f"(objectSid={escape_filter_chars(sid)})",
            attributes=["name", "sAMAccountName", "objectSid", "distinguishedName"],
        )

        if len(results) != 1:
            logging.warning(f"Failed to lookup object with SID {sid!r}")
            entry = LDAPEntry(
                **{
                    "dn": "",
                    "attributes": {"objectSid": sid, "name": sid},
                }
            )
        else:
            entry = results[0]

        self.sid_map[sid] = entry
        return entry


def _first(values: Any) -> Optional[str]:
    if not values:
        return None
    if isinstance(values, (list, tuple)):
        return str(values[0])
    return str(values)
