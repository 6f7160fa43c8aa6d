"""
Name resolution for decoded permissions.

Permission tokens refer to schema classes, attributes and extended rights by
GUID. This module turns those GUIDs into the labels administrators see:

- DisplaySpecifierResolver: schema GUID -> class or attribute display name,
  optionally in the client's locale
- ExtendedRightResolver: rights GUID -> extended right / validated write name

Both resolvers cache their lookups for the lifetime of the object, which is
one report run.
"""

import locale
import uuid
from typing import Dict, List, Optional, Tuple

from ldap3.utils.conv import escape_bytes, escape_filter_chars

from atlinks.lib.constants import (
    DEFAULT_LOCALE,
    DISPLAY_SPECIFIER_SUFFIX,
    DISPLAY_SPECIFIERS_PATH,
    EXTENDED_RIGHTS_CONTAINER,
    UNKNOWN_EXTENDED_RIGHT,
)
from atlinks.lib.ldap import LDAPConnection, LDAPEntry
from atlinks.lib.logger import logging


def client_lcid() -> Optional[int]:
    """
    Get the Windows LCID matching the locale of this process.

    Returns:
        The LCID, or None if the locale is unset or has no Windows equivalent
    """
    language_code, _ = locale.getlocale()
    if not language_code or language_code in ("C", "POSIX"):
        return None

    normalized = locale.normalize(language_code).split(".")[0]
    for lcid in sorted(locale.windows_locale):
        if locale.windows_locale[lcid] == normalized:
            return lcid

    return None


def guid_filter_value(guid: str) -> str:
    """
    Encode a GUID string for matching a binary GUID attribute in a filter.

    Args:
        guid: GUID in its string form

    Returns:
        Escaped little-endian byte representation
    """
    return escape_bytes(uuid.UUID(guid).bytes_le)


class DisplaySpecifierResolver:
    """
    Resolves schema GUIDs to display names through display specifiers.

    Display specifiers live in one container per locale. When locale-aware
    mode is enabled and the client locale has a container, that container is
    used; otherwise the default (en-US) container is.
    """

    def __init__(
        self,
        connection: LDAPConnection,
        locale_aware: bool = False,
        lcid: Optional[int] = None,
    ) -> None:
        """
        Args:
            connection: Connection to the administration service
            locale_aware: Use the client locale for display specifiers
            lcid: LCID to use instead of the process locale (locale-aware mode only)
        """
        self.connection = connection
        self.locale_aware = locale_aware
        self.lcid = lcid

        self._locale: Optional[str] = None
        self._schema_names: Dict[str, Optional[str]] = {}
        self._specifiers: Dict[Tuple[str, str], Optional[LDAPEntry]] = {}

    @property
    def locale(self) -> str:
        """
        Hex LCID of the display specifier container in use.
        """
        if self._locale is not None:
            return self._locale

        self._locale = DEFAULT_LOCALE

        if self.locale_aware:
            lcid = self.lcid if self.lcid is not None else client_lcid()
            if lcid is None:
                logging.debug(
                    f"Client locale has no LCID, using locale {DEFAULT_LOCALE}"
                )
            else:
                candidate = f"{lcid:X}"
                if self.connection.get_entry(
                    self._container(candidate), attributes=["cn"]
                ):
                    self._locale = candidate
                else:
                    logging.debug(
                        f"No display specifiers for locale {candidate}, "
                        f"falling back to locale {DEFAULT_LOCALE}"
                    )

        logging.debug(f"Using display specifiers of locale {self._locale}")
        return self._locale

    @staticmethod
    def _container(locale_key: str) -> str:
        return f"CN={locale_key},{DISPLAY_SPECIFIERS_PATH}"

    def schema_name(self, schema_id: str) -> Optional[str]:
        """
        Get the lDAPDisplayName of the schema object with the given schemaIDGUID.

        Args:
            schema_id: schemaIDGUID as a string

        Returns:
            Raw schema name, or None if no schema object has this GUID
        """
        key = schema_id.lower()
        if key in self._schema_names:
            return self._schema_names[key]

        name = None
        try:
            value = guid_filter_value(schema_id)
        except ValueError:
            logging.warning(f"Invalid schema GUID {schema_id!r}")
            value = None

        if value is not None:
            results = self.connection.search(
                f"(schemaIDGUID={value})",
                attributes=["lDAPDisplayName"],
                search_base=self.connection.schema_path,
            )
            if results:
                name = results[0].get("lDAPDisplayName")
            else:
                logging.warning(f"No schema object with GUID {schema_id!r}")

        self._schema_names[key] = name
        return name

    def display_specifier(self, schema_name: str) -> Optional[LDAPEntry]:
        """
        Fetch the display specifier of a class for the locale in use.

        Args:
            schema_name: lDAPDisplayName of the class

        Returns:
            Display specifier entry, or None if the class has none
        """
        key = (self.locale, schema_name.lower())
        if key in self._specifiers:
            return self._specifiers[key]

        specifier = self.connection.get_entry(
            f"CN={schema_name}{DISPLAY_SPECIFIER_SUFFIX},{self._container(self.locale)}",
            attributes=["classDisplayName", "attributeDisplayNames"],
        )

        self._specifiers[key] = specifier
        return specifier

    def resolve_class_display_name(self, class_id: str) -> str:
        """
        Resolve a schema GUID to its display name.

        Falls back to the raw schema name when there is no display specifier,
        and to the GUID itself when there is no schema object.

        Args:
            class_id: schemaIDGUID of a class (or attribute)

        Returns:
            Display name
        """
        name = self.schema_name(class_id)
        if name is None:
            return class_id

        specifier = self.display_specifier(name)
        if specifier is not None:
            display_name = specifier.get("classDisplayName")
            if display_name:
                return str(display_name)

        return name

    def resolve_attribute_display_name(
        self, attribute_id: str, object_class_id: Optional[str] = None
    ) -> str:
        """
        Resolve an attribute GUID to its display name within an object class.

        Attribute labels are defined per owning class, as
        "attributeName,Display Name" pairs on the class display specifier.

        Args:
            attribute_id: schemaIDGUID of the attribute
            object_class_id: schemaIDGUID of the class the permission applies to

        Returns:
            The class-specific label, or the attribute's own resolved name
        """
        attribute_name = self.resolve_class_display_name(attribute_id)

        if not object_class_id:
            return attribute_name

        class_name = self.schema_name(object_class_id)
        if class_name is None:
            return attribute_name

        specifier = self.display_specifier(class_name)
        if specifier is None:
            return attribute_name

        pairs: List[str] = specifier.get("attributeDisplayNames") or []
        if isinstance(pairs, str):
            pairs = [pairs]

        for pair in pairs:
            left, sep, right = pair.partition(",")
            if sep and left.strip().lower() == attribute_name.lower():
                return right.strip()

        return attribute_name


class ExtendedRightResolver:
    """
    Resolves extended right and validated write GUIDs to display names.
    """

    def __init__(self, connection: LDAPConnection) -> None:
        self.connection = connection
        self._names: Dict[str, str] = {}

    @property
    def search_base(self) -> Optional[str]:
        if self.connection.configuration_path is None:
            return None
        return f"{EXTENDED_RIGHTS_CONTAINER},{self.connection.configuration_path}"

    def resolve_extended_right(self, guid: str) -> str:
        """
        Look up the display name of an extended right by its rightsGuid.

        An unregistered GUID is logged and a placeholder is returned.

        Args:
            guid: rightsGuid of the extended right

        Returns:
            Display name of the right, or a placeholder naming the GUID
        """
        key = guid.lower()
        if key in self._names:
            return self._names[key]

        name = None
        if self.search_base is not None:
            results = self.connection.search(
                f"(rightsGuid={escape_filter_chars(key)})",
                attributes=["displayName"],
                search_base=self.search_base,
            )
            if results:
                name = results[0].get("displayName")

        if not name:
            logging.warning(f"Extended right {guid!r} is not registered")
            name = UNKNOWN_EXTENDED_RIGHT.format(guid)

        self._names[key] = str(name)
        return self._names[key]
