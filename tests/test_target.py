import argparse
import unittest
from unittest.mock import MagicMock, patch

from atlinks.lib.target import Target, is_ip, parse_hashes, split_endpoint


def make_options(**kwargs):
    defaults = {
        "username": "admin@corp.local",
        "password": "Passw0rd",
        "hashes": None,
        "no_pass": False,
        "service": None,
        "dc_ip": None,
        "ns": None,
        "dns_tcp": False,
        "timeout": 10,
        "ldap_scheme": "ldap",
        "ldap_port": None,
        "do_simple": False,
    }
    defaults.update(kwargs)
    return argparse.Namespace(**defaults)


class TestHelpers(unittest.TestCase):
    def test_parse_hashes(self):
        self.assertEqual(parse_hashes("aad3b435:31d6cfe0"), ("aad3b435", "31d6cfe0"))
        self.assertEqual(parse_hashes(":31d6cfe0"), ("31d6cfe0", "31d6cfe0"))
        self.assertEqual(parse_hashes("31d6cfe0"), ("31d6cfe0", "31d6cfe0"))

    def test_split_endpoint(self):
        self.assertEqual(split_endpoint("ars.corp.local"), ("ars.corp.local", None))
        self.assertEqual(split_endpoint("ars.corp.local:15172"), ("ars.corp.local", 15172))
        self.assertEqual(split_endpoint("ars.corp.local:"), ("ars.corp.local:", None))

    def test_is_ip(self):
        self.assertTrue(is_ip("10.0.0.1"))
        self.assertFalse(is_ip("ars.corp.local"))
        self.assertFalse(is_ip(None))


class TestFromOptions(unittest.TestCase):
    def setUp(self):
        patcher = patch("atlinks.lib.target.DnsResolver.create")
        self.create = patcher.start()
        self.addCleanup(patcher.stop)

        self.resolver = MagicMock()
        self.resolver.resolve.return_value = "10.0.0.5"
        self.create.return_value = self.resolver

    def test_service_endpoint(self):
        target = Target.from_options(
            make_options(service="ars.corp.local:15172", dc_ip="10.0.0.1")
        )

        self.assertEqual(target.username, "admin")
        self.assertEqual(target.domain, "CORP.LOCAL")
        self.assertEqual(target.remote_name, "ars.corp.local")
        self.assertEqual(target.ldap_port, 15172)
        self.assertEqual(target.target_ip, "10.0.0.5")
        self.create.assert_called_once_with(ns="10.0.0.1", dns_tcp=False)
        self.resolver.resolve.assert_called_once_with("ars.corp.local")

    def test_domain_fallback(self):
        target = Target.from_options(make_options(ldap_scheme="ldaps"))

        self.assertEqual(target.remote_name, "CORP.LOCAL")
        self.assertEqual(target.ldap_port, 636)

    def test_hashes(self):
        target = Target.from_options(make_options(password=None, hashes=":31d6cfe0"))

        self.assertIsNone(target.password)
        self.assertEqual(target.nthash, "31d6cfe0")

    @patch("atlinks.lib.target.getpass", return_value="prompted")
    def test_password_prompt(self, getpass):
        target = Target.from_options(make_options(password=None))

        getpass.assert_called_once()
        self.assertEqual(target.password, "prompted")

    def test_no_endpoint(self):
        with self.assertRaises(Exception):
            Target.from_options(make_options(username="admin"))


if __name__ == "__main__":
    unittest.main()
