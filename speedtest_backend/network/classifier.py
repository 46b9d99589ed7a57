"""Client address classification and anonymization."""

from __future__ import annotations

import ipaddress
import logging
from enum import Enum
from typing import Callable, List, Optional, Tuple

LOGGER = logging.getLogger(__name__)

PROCESSED_SEPARATOR = " - "
_MAPPED_PREFIX = "::ffff:"


class AddressCategory(str, Enum):
    LOOPBACK_IPV6 = "loopback_ipv6"
    LINK_LOCAL_IPV6 = "link_local_ipv6"
    LOOPBACK_IPV4 = "loopback_ipv4"
    PRIVATE_IPV4 = "private_ipv4"
    LINK_LOCAL_IPV4 = "link_local_ipv4"
    CGNAT_IPV4 = "cgnat_ipv4"
    UNSPECIFIED = "unspecified"
    BROADCAST = "broadcast"
    PUBLIC = "public"


_DESCRIPTIONS = {
    AddressCategory.LOOPBACK_IPV6: "localhost IPv6 access",
    AddressCategory.LINK_LOCAL_IPV6: "link-local IPv6 access",
    AddressCategory.LOOPBACK_IPV4: "localhost IPv4 access",
    AddressCategory.PRIVATE_IPV4: "private IPv4 access",
    AddressCategory.LINK_LOCAL_IPV4: "link-local IPv4 access",
    AddressCategory.CGNAT_IPV4: "CGNAT IPv4 access",
    AddressCategory.UNSPECIFIED: "unspecified address",
    AddressCategory.BROADCAST: "broadcast address",
}


def _exact(value: str) -> Callable[[str], bool]:
    return lambda address: address == value


def _prefix(value: str) -> Callable[[str], bool]:
    return lambda address: address.startswith(value)


def _in_network(cidr: str) -> Callable[[str], bool]:
    network = ipaddress.IPv4Network(cidr)

    def predicate(address: str) -> bool:
        try:
            return ipaddress.IPv4Address(address) in network
        except ValueError:
            return False

    return predicate


# Evaluated top to bottom, first match wins.
CLASSIFICATION_TABLE: List[Tuple[Callable[[str], bool], AddressCategory]] = [
    (_exact("::1"), AddressCategory.LOOPBACK_IPV6),
    (_prefix("fe80:"), AddressCategory.LINK_LOCAL_IPV6),
    (_prefix("127."), AddressCategory.LOOPBACK_IPV4),
    (_in_network("10.0.0.0/8"), AddressCategory.PRIVATE_IPV4),
    (_in_network("172.16.0.0/12"), AddressCategory.PRIVATE_IPV4),
    (_in_network("192.168.0.0/16"), AddressCategory.PRIVATE_IPV4),
    (_in_network("169.254.0.0/16"), AddressCategory.LINK_LOCAL_IPV4),
    (_in_network("100.64.0.0/10"), AddressCategory.CGNAT_IPV4),
    (_exact("0.0.0.0"), AddressCategory.UNSPECIFIED),
    (_exact("255.255.255.255"), AddressCategory.BROADCAST),
]


def normalize_address(address: str) -> str:
    """Lower-case the address and unwrap IPv4-mapped IPv6 notation."""
    candidate = (address or "").strip().lower()
    if candidate.startswith(_MAPPED_PREFIX) and "." in candidate:
        candidate = candidate[len(_MAPPED_PREFIX):]
    return candidate


def classify(address: str) -> AddressCategory:
    candidate = normalize_address(address)
    for predicate, category in CLASSIFICATION_TABLE:
        if predicate(candidate):
            return category
    return AddressCategory.PUBLIC


def describe(category: AddressCategory) -> Optional[str]:
    return _DESCRIPTIONS.get(category)


def is_public(address: str) -> bool:
    return classify(address) is AddressCategory.PUBLIC


def is_ip(address: str) -> bool:
    try:
        ipaddress.ip_address(address)
    except ValueError:
        return False
    return True


def anonymize(address: str) -> str:
    """Truncate a public address so it only identifies its network.

    IPv4 keeps the first three octets (``203.0.113.x``) and IPv6 keeps the
    first three groups (``2001:db8:85a3::``). Non-public addresses and input
    that does not parse are returned untouched.
    """
    if not address or not is_public(address):
        return address

    try:
        parsed = ipaddress.ip_address(address)
    except ValueError:
        return address

    if parsed.version == 6 and parsed.ipv4_mapped is not None:
        return anonymize(str(parsed.ipv4_mapped))

    if parsed.version == 4:
        parts = address.split(".")
        if len(parts) != 4:
            return address
        return f"{parts[0]}.{parts[1]}.{parts[2]}.x"

    if len(address.split(":")) < 3:
        return address
    groups = [format(int(group, 16), "x") for group in parsed.exploded.split(":")[:3]]
    return f"{groups[0]}:{groups[1]}:{groups[2]}::"


def split_processed_string(processed: str) -> Tuple[str, str]:
    """Split ``"<ip> - <rest>"`` into the address and the remainder.

    The remainder keeps the separator. Returns ``("", "")`` when there is no
    separator or the left side is not an IP address.
    """
    index = (processed or "").find(PROCESSED_SEPARATOR)
    if index == -1:
        return "", ""

    address = processed[:index]
    if not is_ip(address):
        LOGGER.warning("Processed string does not start with an IP address: %s", address)
        return "", ""
    return address, processed[index:]
