"""
Target management for atlinks.

A Target holds everything needed to reach and authenticate to the Active
Roles administration service:

- Credentials (username, password, NTLM hashes)
- The service endpoint, either given explicitly or derived from the domain
- LDAP connection settings (scheme, port, timeout, bind type)
"""

import argparse
import socket
from getpass import getpass
from typing import Dict, Optional, Tuple

from dns.exception import DNSException
from dns.resolver import Resolver

from atlinks.lib.errors import handle_error
from atlinks.lib.logger import logging


class Target:
    """
    Connection details of the administration service.
    """

    def __init__(
        self,
        resolver: "DnsResolver",
        domain: str = "",
        username: str = "",
        password: Optional[str] = None,
        remote_name: str = "",
        lmhash: str = "",
        nthash: str = "",
        do_simple: bool = False,
        dc_ip: Optional[str] = None,
        target_ip: Optional[str] = None,
        timeout: int = 10,
        ldap_scheme: str = "ldap",
        ldap_port: Optional[int] = None,
    ) -> None:
        """
        Args:
            resolver: DNS resolver for hostname resolution
            domain: Domain name (empty string if not specified)
            username: Username (empty string if not specified)
            password: Password (None if not specified)
            remote_name: Host name of the administration service
            lmhash: LM hash
            nthash: NT hash
            do_simple: Use SIMPLE bind instead of NTLM
            dc_ip: Domain controller IP used as nameserver fallback
            target_ip: Resolved address of the administration service
            timeout: Connection timeout in seconds
            ldap_scheme: LDAP scheme (ldap or ldaps)
            ldap_port: LDAP port to use
        """
        self.resolver = resolver

        self.domain: str = domain
        self.username: str = username
        self.password: Optional[str] = password
        self.remote_name: str = remote_name
        self.lmhash: str = lmhash
        self.nthash: str = nthash
        self.do_simple: bool = do_simple
        self.dc_ip: Optional[str] = dc_ip
        self.target_ip: Optional[str] = target_ip
        self.timeout: int = timeout
        self.ldap_scheme: str = ldap_scheme
        self.ldap_port: Optional[int] = ldap_port

    @staticmethod
    def from_options(options: argparse.Namespace) -> "Target":
        """
        Create a Target from command line options.

        The endpoint is taken from ``-service`` when given, otherwise from
        ``-dc-ip`` or the domain part of the username.

        Args:
            options: Command line options

        Returns:
            Target: Configured target object

        Raises:
            Exception: If no endpoint can be determined
        """
        dc_ip = getattr(options, "dc_ip", None)
        service = getattr(options, "service", None)
        ns = getattr(options, "ns", None) or dc_ip
        dns_tcp = getattr(options, "dns_tcp", False)
        timeout = getattr(options, "timeout", 10)

        principal = getattr(options, "username", None)
        password = getattr(options, "password", None)
        hashes = getattr(options, "hashes", None)
        no_pass = getattr(options, "no_pass", False)
        do_simple = getattr(options, "do_simple", False)

        ldap_scheme = getattr(options, "ldap_scheme", None) or "ldap"
        ldap_port = getattr(options, "ldap_port", None)

        # Parse username and domain from principal format (user@DOMAIN)
        domain = ""
        username = ""

        if principal is not None:
            parts = principal.split("@")
            if len(parts) == 1:
                username = parts[0]
            else:
                username = "@".join(parts[:-1])
                domain = parts[-1]

        domain = domain.upper()

        if len(username) == 0:
            logging.error("Username is not specified")

        if not password and username != "" and hashes is None and not no_pass:
            password = getpass("Password:")

        lmhash = ""
        nthash = ""
        if hashes is not None:
            lmhash, nthash = parse_hashes(hashes)

        remote_name = ""
        if service:
            remote_name, service_port = split_endpoint(service)
            if service_port is not None:
                ldap_port = service_port
        elif dc_ip:
            remote_name = dc_ip
        elif domain:
            logging.debug(
                "Administration service (-service) not specified. Using domain as host"
            )
            remote_name = domain
        else:
            raise Exception("Could not find the administration service in the specified options")

        if ldap_port is None:
            ldap_port = 636 if ldap_scheme == "ldaps" else 389

        logging.debug(f"Nameserver: {ns!r}")
        logging.debug(f"Service host: {remote_name!r}")
        logging.debug(f"Domain: {domain!r}")
        logging.debug(f"Username: {username!r}")

        resolver = DnsResolver.create(ns=ns, dns_tcp=dns_tcp)
        target_ip = resolver.resolve(remote_name)

        return Target(
            resolver,
            domain=domain,
            username=username,
            password=password,
            remote_name=remote_name,
            lmhash=lmhash,
            nthash=nthash,
            do_simple=do_simple,
            dc_ip=dc_ip,
            target_ip=target_ip,
            timeout=timeout,
            ldap_scheme=ldap_scheme,
            ldap_port=ldap_port,
        )

    def __repr__(self) -> str:
        return f"<Target ({self.remote_name!r}, {self.ldap_scheme}:{self.ldap_port})>"


class DnsResolver:
    """
    DNS resolver with a per-run cache of resolved names.
    """

    def __init__(self) -> None:
        self.resolver: Resolver = Resolver()
        self.use_tcp: bool = False
        self.mappings: Dict[str, str] = {}

    @staticmethod
    def create(ns: Optional[str] = None, dns_tcp: bool = False) -> "DnsResolver":
        """
        Create a DnsResolver.

        Args:
            ns: Nameserver to use, the system configuration otherwise
            dns_tcp: Whether to use TCP for DNS queries

        Returns:
            DnsResolver: A configured DNS resolver
        """
        resolver = DnsResolver()

        if ns is not None:
            resolver.resolver.nameservers = [ns]

        resolver.use_tcp = dns_tcp

        return resolver

    def resolve(self, hostname: str) -> str:
        """
        Resolve hostname to IP address using DNS, then local resolution.

        Args:
            hostname: The hostname to resolve

        Returns:
            str: The resolved IP address or the original hostname if resolution fails
        """
        if hostname in self.mappings:
            logging.debug(
                f"Resolved {hostname!r} from cache: {self.mappings[hostname]}"
            )
            return self.mappings[hostname]

        if is_ip(hostname):
            return hostname

        ip_addr = None
        if self.resolver.nameservers:
            logging.debug(
                f"Trying to resolve {hostname!r} at {self.resolver.nameservers[0]!r}"
            )
            try:
                answers = self.resolver.resolve(hostname, tcp=self.use_tcp)
                if answers:
                    ip_addr = str(answers[0])
            except DNSException as e:
                logging.warning(f"DNS resolution failed: {e}")
                handle_error(True)

        if ip_addr is None:
            logging.debug(f"Trying to resolve {hostname!r} locally")
            try:
                ip_addr = socket.gethostbyname(hostname)
            except OSError:
                ip_addr = None

        if ip_addr is None:
            logging.warning(f"Failed to resolve: {hostname}")
            return hostname

        self.mappings[hostname] = ip_addr
        return ip_addr


def is_ip(hostname: Optional[str]) -> bool:
    if hostname is None:
        return False

    try:
        _ = socket.inet_aton(hostname)
        return True
    except OSError:
        return False


def parse_hashes(hashes: str) -> Tuple[str, str]:
    """
    Split ``[lmhash:]nthash`` into its parts.

    A missing LM hash is replaced by the NT hash, as Windows tools accept.

    Args:
        hashes: Hash string from the command line

    Returns:
        Tuple of (lmhash, nthash)
    """
    hash_parts = hashes.split(":")
    if len(hash_parts) == 1:
        return hash_parts[0], hash_parts[0]

    lmhash, nthash = hash_parts[0], hash_parts[-1]
    if len(lmhash) == 0:
        lmhash = nthash
    return lmhash, nthash


def split_endpoint(endpoint: str) -> Tuple[str, Optional[int]]:
    """
    Split ``host[:port]`` into host and optional port.

    Args:
        endpoint: Endpoint string

    Returns:
        Tuple of (host, port or None)
    """
    host, sep, port = endpoint.rpartition(":")
    if sep and port.isdigit() and host:
        return host, int(port)
    return endpoint, None
