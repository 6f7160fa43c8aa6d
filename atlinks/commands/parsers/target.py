"""
Connection and authentication options.

This module adds the options shared by every atlinks command for reaching
and authenticating to the Active Roles administration service.
"""

import argparse


def add_argument_group(parser: argparse.ArgumentParser) -> None:
    """
    Add connection, authentication and LDAP arguments to a parser.

    Args:
        parser: The parser to add argument groups to
    """
    conn_group = parser.add_argument_group("connection options")

    _ = conn_group.add_argument(
        "-service",
        action="store",
        metavar="host[:port]",
        help=(
            "Administration service to connect to. If omitted, -dc-ip or the "
            "domain part of the username is used"
        ),
    )
    _ = conn_group.add_argument(
        "-dc-ip",
        action="store",
        metavar="ip address",
        help="IP address of a domain controller, also used as nameserver",
    )
    _ = conn_group.add_argument(
        "-ns",
        action="store",
        metavar="ip address",
        help="Nameserver for DNS resolution",
    )
    _ = conn_group.add_argument(
        "-dns-tcp", action="store_true", help="Use TCP instead of UDP for DNS queries"
    )
    _ = conn_group.add_argument(
        "-timeout",
        action="store",
        metavar="seconds",
        help="Timeout for connections in seconds (default: 10)",
        default=10,
        type=int,
    )

    auth_group = parser.add_argument_group("authentication options")

    _ = auth_group.add_argument(
        "-u",
        "-username",
        metavar="username@domain",
        dest="username",
        action="store",
        help="Username to authenticate with",
    )
    _ = auth_group.add_argument(
        "-p",
        "-password",
        metavar="password",
        dest="password",
        action="store",
        help="Password for authentication",
    )
    _ = auth_group.add_argument(
        "-hashes",
        action="store",
        metavar="[lmhash:]nthash",
        help="NTLM hash",
    )
    _ = auth_group.add_argument(
        "-no-pass",
        action="store_true",
        help="Don't ask for password",
    )

    ldap_group = parser.add_argument_group("ldap options")
    _ = ldap_group.add_argument(
        "-ldap-scheme",
        action="store",
        metavar="ldap scheme",
        choices=["ldap", "ldaps"],
        default="ldap",
        help="LDAP connection scheme to use (default: ldap)",
    )
    _ = ldap_group.add_argument(
        "-ldap-port",
        action="store",
        metavar="port",
        type=int,
        help="Port for LDAP communication (default: 636 for ldaps, 389 for ldap)",
    )
    _ = ldap_group.add_argument(
        "-ldap-simple-auth",
        action="store_true",
        dest="do_simple",
        help="Use SIMPLE LDAP authentication instead of NTLM",
    )
