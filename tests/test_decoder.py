import unittest
from unittest.mock import MagicMock

from atlinks.lib.constants import FIXED, RIGHTS_RULES
from atlinks.lib.decoder import (
    DecodedPermission,
    PermissionDecoder,
    extract_tokens,
    find_rule,
    split_token,
)
from atlinks.lib.errors import DecodeError
from atlinks.lib.resolvers import DisplaySpecifierResolver, ExtendedRightResolver

MAIL_GUID = "bf967961-0de6-11d0-a285-00aa003049e2"
USER_GUID = "bf967aba-0de6-11d0-a285-00aa003049e2"
RESET_PASSWORD_GUID = "00299570-246d-11d0-a768-00aa006e0529"


def make_decoder():
    display_specifiers = MagicMock(spec=DisplaySpecifierResolver)
    display_specifiers.resolve_attribute_display_name.return_value = "mail"
    display_specifiers.resolve_class_display_name.return_value = "User"

    extended_rights = MagicMock(spec=ExtendedRightResolver)
    extended_rights.resolve_extended_right.return_value = "Reset Password"

    return PermissionDecoder(display_specifiers, extended_rights)


class TestTokens(unittest.TestCase):
    def test_extract_strips_brackets_and_parentheses(self):
        ace_list = f"[(A;;RP;{MAIL_GUID};{USER_GUID})][(D;;SD;;)]"
        self.assertEqual(
            extract_tokens(ace_list),
            [f"A;;RP;{MAIL_GUID};{USER_GUID}", "D;;SD;;"],
        )

    def test_extract_keeps_bare_records(self):
        ace_list = f"[A;;SD;;][D;;RP;;{USER_GUID}][ (A;;LC;;) ]"
        self.assertEqual(
            extract_tokens(ace_list),
            ["A;;SD;;", f"D;;RP;;{USER_GUID}", "A;;LC;;"],
        )

    def test_extract_ignores_text_outside_brackets(self):
        self.assertEqual(extract_tokens("O:DAG:DA [(A;;LC;;)] trailing"), ["A;;LC;;"])
        self.assertEqual(extract_tokens(""), [])
        self.assertEqual(extract_tokens(None), [])

    def test_split_pads_missing_guids(self):
        self.assertEqual(split_token("A;;RP"), ["A", "", "RP", "", ""])
        self.assertEqual(split_token("A;;RP;x"), ["A", "", "RP", "x", ""])

    def test_split_ignores_fields_after_class_guid(self):
        fields = split_token(f"A;CI;RP;;{USER_GUID};S-1-5-11")
        self.assertEqual(fields, ["A", "CI", "RP", "", USER_GUID])

    def test_split_rejects_short_tokens(self):
        for token in ["", "A", "A;RP"]:
            with self.subTest(token=token):
                with self.assertRaises(DecodeError):
                    split_token(token)


class TestRules(unittest.TestCase):
    def test_mnemonic_order_does_not_matter(self):
        self.assertIs(find_rule("WPRP"), RIGHTS_RULES["RPWP"])
        self.assertIs(find_rule("DCCC"), RIGHTS_RULES["CCDC"])
        self.assertIs(find_rule("rp"), RIGHTS_RULES["RP"])

    def test_unknown_codes(self):
        self.assertIsNone(find_rule("ZZ"))
        self.assertIsNone(find_rule("RPW"))
        self.assertIsNone(find_rule("RPLC"))


class TestPermissionDecoder(unittest.TestCase):
    def setUp(self):
        self.decoder = make_decoder()

    def test_fixed_codes(self):
        for code, rule in RIGHTS_RULES.items():
            if rule.kind != FIXED:
                continue
            with self.subTest(code=code):
                self.assertEqual(self.decoder.describe(code), rule.text)

        self.assertEqual(self.decoder.describe("SD"), "Delete")
        self.assertEqual(
            self.decoder.describe("CCDCLCSWRPWPDTLOCRCOSDRCWDWO"), "Full Control"
        )

    def test_codes_without_guid(self):
        expected = {
            "RP": "Read All Properties",
            "WP": "Write All Properties",
            "RPWP": "Read/Write All Properties",
            "CC": "Create All Child Objects",
            "DC": "Delete All Child Objects",
            "CCDC": "Create/Delete All Child Objects",
            "MT": "Move All Child into this container",
            "CR": "All Extended Rights",
            "SW": "All Validated Writes",
        }
        for code, text in expected.items():
            with self.subTest(code=code):
                self.assertEqual(self.decoder.describe(code), text)

        self.decoder.display_specifiers.resolve_attribute_display_name.assert_not_called()
        self.decoder.extended_rights.resolve_extended_right.assert_not_called()

    def test_attribute_codes_resolve_guid_in_class_context(self):
        self.assertEqual(self.decoder.describe("RP", MAIL_GUID, USER_GUID), "Read mail")
        self.decoder.display_specifiers.resolve_attribute_display_name.assert_called_with(
            MAIL_GUID, USER_GUID
        )

        self.assertEqual(
            self.decoder.describe("CC", USER_GUID), "Create mail Objects"
        )
        self.decoder.display_specifiers.resolve_attribute_display_name.assert_called_with(
            USER_GUID, None
        )

    def test_extended_rights_are_looked_up(self):
        self.assertEqual(
            self.decoder.describe("CR", RESET_PASSWORD_GUID), "Reset Password"
        )
        self.decoder.extended_rights.resolve_extended_right.assert_called_once_with(
            RESET_PASSWORD_GUID
        )

    def test_unknown_code_degrades_to_empty_text(self):
        permission = self.decoder.decode_token("A;;XX;;")
        self.assertEqual(permission, DecodedPermission("Allow", "", "All Classes"))

    def test_effects(self):
        self.assertEqual(self.decoder.decode_token("A;;SD").type, "Allow")
        self.assertEqual(self.decoder.decode_token("D;;SD").type, "Deny")
        self.assertEqual(self.decoder.decode_token("X;;SD").type, "")

    def test_apply_to(self):
        self.assertEqual(self.decoder.decode_token("A;;SD;;").apply_to, "All Classes")
        self.assertEqual(
            self.decoder.decode_token(f"A;;SD;;{USER_GUID}").apply_to, "User"
        )
        self.decoder.display_specifiers.resolve_class_display_name.assert_called_once_with(
            USER_GUID
        )

    def test_decode_keeps_one_entry_per_token_in_order(self):
        ace_list = "".join(
            [
                "[(A;;RP;;)]",
                "[(D;;WP;;)]",
                "[(A;;LC;;)]",
                f"[(A;;CR;{RESET_PASSWORD_GUID};{USER_GUID})]",
            ]
        )
        permissions = self.decoder.decode(ace_list)

        self.assertEqual(
            [permission.to_row() for permission in permissions],
            [
                ("Allow", "Read All Properties", "All Classes"),
                ("Deny", "Write All Properties", "All Classes"),
                ("Allow", "List Contents", "All Classes"),
                ("Allow", "Reset Password", "User"),
            ],
        )

    def test_decode_bare_and_wrapped_records_alike(self):
        bare = self.decoder.decode(f"[A;;SD;;][D;;RP;;{USER_GUID}]")
        wrapped = self.decoder.decode(f"[(A;;SD;;)][(D;;RP;;{USER_GUID})]")

        self.assertEqual(bare, wrapped)
        self.assertEqual(bare[0], DecodedPermission("Allow", "Delete", "All Classes"))
        self.assertEqual(bare[1].type, "Deny")
        self.assertEqual(bare[1].apply_to, "User")
        self.decoder.display_specifiers.resolve_class_display_name.assert_called_with(
            USER_GUID
        )

    def test_decode_is_repeatable(self):
        ace_list = f"[(A;;RPWP;{MAIL_GUID};{USER_GUID})][(D;;DT;;)]"
        self.assertEqual(self.decoder.decode(ace_list), self.decoder.decode(ace_list))

    def test_malformed_token_is_reported_and_skipped(self):
        with self.assertLogs("atlinks", level="WARNING") as logs:
            permissions = self.decoder.decode("[(A;RP)][(A;;SD;;)]")

        self.assertEqual(len(permissions), 2)
        self.assertTrue(permissions[0].failed)
        self.assertEqual(permissions[0].type, "")
        self.assertIn("A;RP", permissions[0].permissions)
        self.assertEqual(permissions[1], DecodedPermission("Allow", "Delete", "All Classes"))
        self.assertIn("Failed to decode permission", logs.output[0])


if __name__ == "__main__":
    unittest.main()
