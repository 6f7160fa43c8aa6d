"""
Decoder for access template permission lists.

An access template stores its effective permissions as a string of
bracketed, SDDL-like entries::

    [(A;;RPWP;<attribute guid>;<object class guid>)][(D;;SD;;)]

Each entry is a ``;``-separated record of effect, flags, rights code, right
GUID and applicable object class GUID. The decoder turns every entry into a
DecodedPermission of (Type, Permissions, ApplyTo).
"""

import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple

from atlinks.lib.constants import (
    ALL_CLASSES,
    ATTRIBUTE,
    EFFECTS,
    EXTENDED,
    FIXED,
    RIGHTS_RULES,
    RightsRule,
)
from atlinks.lib.errors import DecodeError
from atlinks.lib.logger import logging
from atlinks.lib.resolvers import DisplaySpecifierResolver, ExtendedRightResolver

TOKEN_PATTERN = re.compile(r"\[([^\[\]]*?)\]")

# Number of fields a token is padded to, and the minimum it must carry
TOKEN_FIELDS = 5
REQUIRED_FIELDS = 3


@dataclass(frozen=True)
class DecodedPermission:
    """
    One decoded permission entry.

    Attributes:
        type: "Allow", "Deny", or blank for an unknown effect
        permissions: Description of the granted rights
        apply_to: Object class the entry applies to
        failed: The token could not be decoded
    """

    type: str
    permissions: str
    apply_to: str
    failed: bool = False

    def to_row(self) -> Tuple[str, str, str]:
        return (self.type, self.permissions, self.apply_to)


def extract_tokens(ace_list: str) -> List[str]:
    """
    Extract the encoded tokens from an ACE list.

    Every ``[...]`` group is one token. Parentheses enclosing the whole
    record, as in ``[(A;;RP;;)]``, are removed; bare records are kept as is.

    Args:
        ace_list: Effective ACE list of an access template

    Returns:
        Tokens in source order
    """
    tokens = []
    for match in TOKEN_PATTERN.findall(ace_list or ""):
        token = match.strip()
        if token.startswith("(") and token.endswith(")"):
            token = token[1:-1]
        tokens.append(token)
    return tokens


def split_token(token: str) -> List[str]:
    """
    Split a token into its fields, padded with empty strings.

    Args:
        token: One token, without brackets and parentheses

    Returns:
        [effect, flags, rights code, right GUID, object class GUID]

    Raises:
        DecodeError: If the token has fewer than three fields
    """
    fields = token.split(";")
    if len(fields) < REQUIRED_FIELDS:
        raise DecodeError(
            token, f"Expected at least {REQUIRED_FIELDS} fields, got {len(fields)}"
        )

    fields = [field.strip() for field in fields[:TOKEN_FIELDS]]
    return fields + [""] * (TOKEN_FIELDS - len(fields))


def _mnemonics(code: str) -> Optional[FrozenSet[str]]:
    if len(code) % 2 != 0:
        return None
    return frozenset(code[i : i + 2] for i in range(0, len(code), 2))


# Rights codes keyed by their set of two-letter mnemonics, so that "WPRP"
# finds the "RPWP" rule
_RULES_BY_MNEMONICS: Dict[FrozenSet[str], RightsRule] = {
    mnemonics: rule
    for code, rule in RIGHTS_RULES.items()
    for mnemonics in [_mnemonics(code)]
    if mnemonics is not None
}


def find_rule(code: str) -> Optional[RightsRule]:
    """
    Find the description rule of a rights code.

    Args:
        code: Rights code of a token, e.g. "RPWP"

    Returns:
        The matching rule, or None for an unrecognized code
    """
    code = code.upper()
    if code in RIGHTS_RULES:
        return RIGHTS_RULES[code]

    mnemonics = _mnemonics(code)
    if mnemonics is None:
        return None
    return _RULES_BY_MNEMONICS.get(mnemonics)


class PermissionDecoder:
    """
    Decodes access template ACE lists into readable permissions.
    """

    def __init__(
        self,
        display_specifiers: DisplaySpecifierResolver,
        extended_rights: ExtendedRightResolver,
    ) -> None:
        self.display_specifiers = display_specifiers
        self.extended_rights = extended_rights

    def describe(self, code: str, right_guid: str = "", class_guid: str = "") -> str:
        """
        Describe a rights code.

        Args:
            code: Rights code
            right_guid: Attribute, child class or extended right GUID (may be empty)
            class_guid: Object class GUID the entry applies to (may be empty)

        Returns:
            Permission description; empty for an unrecognized code
        """
        rule = find_rule(code)
        if rule is None:
            logging.debug(f"Unrecognized rights code {code!r}")
            return ""

        if rule.kind == FIXED:
            return rule.text

        if rule.kind == ATTRIBUTE:
            if right_guid:
                name = self.display_specifiers.resolve_attribute_display_name(
                    right_guid, class_guid or None
                )
            else:
                name = rule.fallback
            return rule.text.format(name)

        if rule.kind == EXTENDED:
            if not right_guid:
                return rule.fallback or ""
            return self.extended_rights.resolve_extended_right(right_guid)

        return ""

    def apply_to(self, class_guid: str) -> str:
        if not class_guid:
            return ALL_CLASSES
        return self.display_specifiers.resolve_class_display_name(class_guid)

    def decode_token(self, token: str) -> DecodedPermission:
        """
        Decode a single token.

        Args:
            token: One token, without brackets and parentheses

        Returns:
            The decoded permission

        Raises:
            DecodeError: If the token has fewer than three fields
        """
        effect, _flags, code, right_guid, class_guid = split_token(token)

        return DecodedPermission(
            type=EFFECTS.get(effect.upper(), ""),
            permissions=self.describe(code, right_guid, class_guid),
            apply_to=self.apply_to(class_guid),
        )

    def decode(self, ace_list: str) -> List[DecodedPermission]:
        """
        Decode every token of an ACE list.

        Malformed tokens produce a failed entry in their position and decoding
        continues with the next token.

        Args:
            ace_list: Effective ACE list of an access template

        Returns:
            One DecodedPermission per token, in source order
        """
        permissions = []
        for token in extract_tokens(ace_list):
            try:
                permissions.append(self.decode_token(token))
            except DecodeError as e:
                logging.warning(f"Failed to decode permission: {e}")
                permissions.append(
                    DecodedPermission(
                        type="",
                        permissions=f"Undecodable entry {token!r}",
                        apply_to="",
                        failed=True,
                    )
                )
        return permissions
