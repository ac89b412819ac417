"""
Interface scoring.

Picks the local IPv4 address most likely to be reachable by peers on the LAN.
Every interface that is up and not loopback gets a score (gateway, link type,
virtual-adapter penalty), each of its IPv4 addresses then gets a small bonus
for the usual private ranges, and the candidates are sorted best first.
"""

import ipaddress
import logging
import socket
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable

import psutil

from ..utils.constants import (CLASS_A_PRIVATE_BONUS, CLASS_C_PRIVATE_BONUS, ETHERNET_BONUS,
                               FALLBACK_ADDRESS, GATEWAY_BONUS, VIRTUAL_KEYWORDS,
                               VIRTUAL_PENALTY, WIFI_BONUS)

logger = logging.getLogger(__name__)

KIND_WIFI = "wifi"
KIND_ETHERNET = "ethernet"
KIND_OTHER = "other"

WIFI_NAME_PREFIXES = ("wl", "wi-fi", "wifi", "wireless", "airport")
ETHERNET_NAME_PREFIXES = ("eth", "en", "ethernet", "local area connection")

RTF_GATEWAY = 0x2
PROC_NET_ROUTE = Path("/proc/net/route")
SYS_CLASS_NET = Path("/sys/class/net")


@dataclass(frozen=True)
class InterfaceCandidate:
    address: str
    score: int
    interface_name: str


@dataclass
class NetworkInterface:
    """What the scorer needs to know about one OS interface."""
    name: str
    description: str = ""
    is_up: bool = True
    is_loopback: bool = False
    kind: str = KIND_OTHER
    has_gateway: bool = False
    ipv4_addresses: list[str] = field(default_factory=list)


def _is_loopback_address(address: str) -> bool:
    try:
        return ipaddress.ip_address(address).is_loopback
    except ValueError:
        return False


def score_interface(interface: NetworkInterface) -> int:
    """Score shared by every address of the interface."""
    score = 0
    if interface.has_gateway:
        score += GATEWAY_BONUS
    if interface.kind == KIND_WIFI:
        score += WIFI_BONUS
    if interface.kind == KIND_ETHERNET:
        score += ETHERNET_BONUS

    name = interface.name.lower()
    description = (interface.description or "").lower()
    if any(k in name or k in description for k in VIRTUAL_KEYWORDS):
        score -= VIRTUAL_PENALTY
    return score


def score_address(interface_score: int, address: str) -> int:
    score = interface_score
    if address.startswith("192.168."):
        score += CLASS_C_PRIVATE_BONUS
    if address.startswith("10."):
        score += CLASS_A_PRIVATE_BONUS
    return score


# --- Default interface source (psutil + OS routing information) ---

def _gateway_interfaces_from_route_table() -> set:
    """Interfaces with a gateway route, read from the Linux routing table."""
    names = set()
    if not PROC_NET_ROUTE.is_file():
        return names
    with PROC_NET_ROUTE.open() as route_table:
        next(route_table, None) # header
        for line in route_table:
            fields = line.split()
            if len(fields) < 4:
                continue
            iface, gateway, flags = fields[0], fields[2], fields[3]
            if gateway != "00000000" and int(flags, 16) & RTF_GATEWAY:
                names.add(iface)
    return names


def get_primary_ip_address() -> str | None:
    """Address the OS would use for outbound traffic (no packet is sent)."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.settimeout(0.1)
            s.connect(('8.8.8.8', 80))
            return s.getsockname()[0]
    except OSError as e:
        logger.debug("Could not determine primary outbound address: %s", e)
        return None


def _interface_kind(name: str) -> str:
    sys_entry = SYS_CLASS_NET / name
    if sys.platform.startswith("linux") and sys_entry.exists():
        if (sys_entry / "wireless").exists() or (sys_entry / "phy80211").exists():
            return KIND_WIFI
        # Virtual devices (bridges, veths, tunnels) have no backing device.
        if (sys_entry / "device").exists():
            return KIND_ETHERNET
        return KIND_OTHER

    lowered = name.lower()
    if lowered.startswith(WIFI_NAME_PREFIXES):
        return KIND_WIFI
    if lowered.startswith(ETHERNET_NAME_PREFIXES):
        return KIND_ETHERNET
    return KIND_OTHER


def enumerate_interfaces() -> list[NetworkInterface]:
    """Builds NetworkInterface records for every interface psutil reports."""
    addrs = psutil.net_if_addrs()
    stats = psutil.net_if_stats()
    gateway_ifaces = _gateway_interfaces_from_route_table()
    primary_ip = get_primary_ip_address() if not gateway_ifaces else None

    interfaces = []
    for name, snics in addrs.items():
        ipv4 = [snic.address for snic in snics if snic.family == socket.AF_INET]
        stat = stats.get(name)
        flags = getattr(stat, "flags", "") or ""
        is_loopback = ("loopback" in flags.split(",")
                       or name.lower() in ("lo", "lo0")
                       or (bool(ipv4) and all(_is_loopback_address(a) for a in ipv4)))
        interfaces.append(NetworkInterface(
            name=name,
            description=name,
            is_up=bool(stat and stat.isup),
            is_loopback=is_loopback,
            kind=_interface_kind(name),
            has_gateway=name in gateway_ifaces or (primary_ip is not None and primary_ip in ipv4),
            ipv4_addresses=ipv4,
        ))
    return interfaces


class InterfaceScorer:
    """Ranks local IPv4 addresses by how useful they are as a LAN address."""

    def __init__(self, interface_source: Callable[[], Iterable[NetworkInterface]] = enumerate_interfaces):
        self.interface_source = interface_source

    def _collect(self) -> list[InterfaceCandidate]:
        candidates = []
        for interface in self.interface_source():
            if not interface.is_up or interface.is_loopback:
                continue
            interface_score = score_interface(interface)
            for address in interface.ipv4_addresses:
                if _is_loopback_address(address):
                    continue
                candidates.append(InterfaceCandidate(
                    address=address,
                    score=score_address(interface_score, address),
                    interface_name=interface.name,
                ))
        return candidates

    def rank(self) -> list[InterfaceCandidate]:
        """All candidates, best first. Ties keep discovery order."""
        try:
            candidates = self._collect()
        except Exception as e:
            # Interface discovery must never block startup.
            logger.debug("Interface enumeration failed: %s", e)
            return []
        # sorted() is stable
        return sorted(candidates, key=lambda c: c.score, reverse=True)

    def best_address(self) -> str:
        ranked = self.rank()
        return ranked[0].address if ranked else FALLBACK_ADDRESS

    def all_addresses(self) -> list[str]:
        return [c.address for c in self.rank()]
