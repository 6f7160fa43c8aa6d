import unittest

from fakes import FakeConnection, make_entry
from impacket.ldap.ldaptypes import LDAP_SID

from atlinks.lib.constants import (
    ACCESS_TEMPLATE_CLASS,
    ACCESS_TEMPLATE_LINK_CLASS,
    LINK_ACCESS_TEMPLATE,
    LINK_DIRECTORY_OBJECT,
    LINK_TRUSTEE_SID,
    TEMPLATE_ACE_LIST,
)
from atlinks.lib.links import (
    AccessTemplate,
    AccessTemplateLink,
    LinkQueryService,
    is_dn,
    is_sid,
    sid_filter_value,
    sid_to_string,
)

TRUSTEE_SID = "S-1-5-21-1004336348-1177238915-682003330-1105"
TEMPLATE_DN = "CN=Help Desk,CN=Access Templates,CN=Configuration"
OU_DN = "OU=Sales,DC=corp,DC=local"


def binary_sid(sid):
    value = LDAP_SID()
    value.fromCanonical(sid)
    return value.getData()


class TestIdentities(unittest.TestCase):
    def test_is_dn(self):
        self.assertTrue(is_dn(OU_DN))
        self.assertTrue(is_dn("CN=John Doe,OU=Users,DC=corp,DC=local"))
        self.assertFalse(is_dn("jdoe"))
        self.assertFalse(is_dn("CORP\\jdoe"))

    def test_is_sid(self):
        self.assertTrue(is_sid(TRUSTEE_SID))
        self.assertTrue(is_sid("s-1-5-11"))
        self.assertFalse(is_sid("S-1-"))
        self.assertFalse(is_sid("jdoe"))

    def test_sid_to_string(self):
        self.assertEqual(sid_to_string(binary_sid(TRUSTEE_SID)), TRUSTEE_SID)
        self.assertEqual(sid_to_string(TRUSTEE_SID.encode()), TRUSTEE_SID)
        self.assertEqual(sid_to_string(TRUSTEE_SID), TRUSTEE_SID)

    def test_sid_filter_value(self):
        self.assertEqual(
            sid_filter_value("S-1-5-11"),
            "\\01\\01\\00\\00\\00\\00\\00\\05\\0b\\00\\00\\00",
        )


class TestLinkQueryService(unittest.TestCase):
    def setUp(self):
        self.connection = FakeConnection()
        self.service = LinkQueryService(self.connection)

    def test_find_object_by_dn(self):
        self.connection.add_entry(OU_DN, name="Sales")
        self.assertEqual(self.service.find_object(OU_DN).dn, OU_DN)
        self.assertIsNone(self.service.find_object("OU=Missing,DC=corp,DC=local"))

    def test_find_object_by_account_name(self):
        user = make_entry("CN=John Doe,OU=Users,DC=corp,DC=local", objectSid=TRUSTEE_SID)
        self.connection.add_result(
            "(|(sAMAccountName=jdoe)(userPrincipalName=jdoe)(name=jdoe)(cn=jdoe))", user
        )
        self.assertIs(self.service.find_object("CORP\\jdoe"), user)
        self.assertIs(self.service.find_object(" jdoe "), user)

    def test_find_object_by_sid(self):
        user = make_entry("CN=John Doe,OU=Users,DC=corp,DC=local", objectSid=TRUSTEE_SID)
        self.connection.add_result(f"(objectSid={TRUSTEE_SID})", user)
        self.assertIs(self.service.find_object(TRUSTEE_SID.lower()), user)

    def test_ambiguous_object(self):
        search_filter = "(|(sAMAccountName=admins)(userPrincipalName=admins)(name=admins)(cn=admins))"
        self.connection.add_result(
            search_filter,
            make_entry("CN=Admins,OU=A,DC=corp,DC=local"),
            make_entry("CN=Admins,OU=B,DC=corp,DC=local"),
        )
        with self.assertLogs("atlinks", level="ERROR"):
            self.assertIsNone(self.service.find_object("admins"))

    def test_find_access_template_by_name(self):
        self.connection.add_result(
            f"(&(objectClass={ACCESS_TEMPLATE_CLASS})"
            "(|(cn=Help Desk)(name=Help Desk)(displayName=Help Desk)))",
            make_entry(TEMPLATE_DN, name="Help Desk", **{TEMPLATE_ACE_LIST: "[(A;;RP;;)]"}),
        )

        template = self.service.find_access_template("Help Desk")
        self.assertEqual(template, AccessTemplate(TEMPLATE_DN, "Help Desk", "[(A;;RP;;)]"))

        # found templates are served from cache afterwards
        self.assertIs(self.service.get_access_template(TEMPLATE_DN.upper()), template)
        self.assertEqual(self.connection.count("get_entry"), 0)

    def test_get_access_template_joins_multi_valued_ace_list(self):
        self.connection.add_entry(
            TEMPLATE_DN, cn="Help Desk", **{TEMPLATE_ACE_LIST: ["[(A;;RP;;)]", "[(D;;SD;;)]"]}
        )
        template = self.service.get_access_template(TEMPLATE_DN)
        self.assertEqual(template.name, "Help Desk")
        self.assertEqual(template.ace_list, "[(A;;RP;;)][(D;;SD;;)]")

        self.assertIsNone(self.service.get_access_template("CN=Missing"))

    def test_links_for_trustee(self):
        raw_sid = binary_sid(TRUSTEE_SID)
        self.connection.add_result(
            f"(&(objectClass={ACCESS_TEMPLATE_LINK_CLASS})"
            f"({LINK_TRUSTEE_SID}={sid_filter_value(TRUSTEE_SID)}))",
            make_entry(
                "CN=link1",
                raw={LINK_TRUSTEE_SID: [raw_sid]},
                **{
                    LINK_TRUSTEE_SID: raw_sid,
                    LINK_DIRECTORY_OBJECT: OU_DN,
                    LINK_ACCESS_TEMPLATE: TEMPLATE_DN,
                },
            ),
        )

        links = self.service.links_for_trustee(TRUSTEE_SID)
        self.assertEqual(
            links, [AccessTemplateLink("CN=link1", TRUSTEE_SID, OU_DN, TEMPLATE_DN)]
        )

    def test_links_for_template_without_links(self):
        self.assertEqual(self.service.links_for_template(TEMPLATE_DN), [])
        self.assertEqual(
            self.connection.calls[-1][2],
            f"(&(objectClass={ACCESS_TEMPLATE_LINK_CLASS})"
            f"({LINK_ACCESS_TEMPLATE}={TEMPLATE_DN}))",
        )

    def test_resolve_trustee(self):
        self.connection.sids[TRUSTEE_SID] = make_entry("CN=John Doe,OU=Users,DC=corp,DC=local")
        self.assertEqual(
            self.service.resolve_trustee(TRUSTEE_SID), "CN=John Doe,OU=Users,DC=corp,DC=local"
        )
        self.assertEqual(self.service.resolve_trustee("S-1-5-11"), "S-1-5-11")


if __name__ == "__main__":
    unittest.main()
