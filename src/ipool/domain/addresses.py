"""Expansion of address specifications into ordered candidate lists.

A specification is either a CIDR block (``10.0.0.0/30``) or an inclusive range
(``10.0.0.3-10.0.0.9``). Ranges are summarised into the minimal list of aligned
CIDR blocks, largest first, and every block is enumerated in ascending order.

Candidates are produced lazily so that large blocks are never materialised on
the allocation path. Everything in this module is pure: no store access, no
logging.
"""

from __future__ import annotations

from ipaddress import IPv4Address, IPv4Network, summarize_address_range
from typing import TYPE_CHECKING, Final

from ipool.domain.errors import ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from ipool.domain.model import PoolSpec

# last octets dropped by avoid_buggy (network/broadcast of /24-style ranges)
BUGGY_OCTETS: Final[frozenset[int]] = frozenset({0, 255})
# last octets dropped by avoid_gateway
GATEWAY_OCTETS: Final[frozenset[int]] = frozenset({1, 254})

RANGE_SEPARATOR: Final[str] = "-"


def parse_address(value: str) -> IPv4Address:
    """Parse a single IPv4 address, raising ``ValidationError`` when malformed."""

    try:
        return IPv4Address(value.strip())
    except ValueError as exc:
        raise ValidationError(value, f"invalid IP address {value!r}") from exc


def normalize_address(value: str) -> str:
    """Return the canonical dotted-quad text of ``value``."""

    return str(parse_address(value))


def parse_spec(spec: str) -> list[IPv4Network]:
    """Return the CIDR blocks covered by one specification."""

    text = spec.strip()
    if RANGE_SEPARATOR not in text:
        if "/" not in text:
            raise ValidationError(spec, f"invalid CIDR {spec!r}: missing prefix length")
        try:
            return [IPv4Network(text, strict=False)]
        except ValueError as exc:
            raise ValidationError(spec, f"invalid CIDR {spec!r}") from exc

    start_text, end_text = (part.strip() for part in text.split(RANGE_SEPARATOR, 1))
    start = _parse_endpoint(spec, start_text, "start")
    end = _parse_endpoint(spec, end_text, "end")
    if start > end:
        raise ValidationError(
            spec, f"invalid IP range {spec!r}: start {start} is greater than end {end}"
        )
    return list(summarize_address_range(start, end))


def _parse_endpoint(spec: str, value: str, label: str) -> IPv4Address:
    try:
        return IPv4Address(value)
    except ValueError as exc:
        raise ValidationError(
            spec, f"invalid IP range {spec!r}: invalid {label} IP {value!r}"
        ) from exc


def _skipped_octets(*, avoid_buggy: bool, avoid_gateway: bool) -> frozenset[int]:
    skipped: set[int] = set()
    if avoid_buggy:
        skipped |= BUGGY_OCTETS
    if avoid_gateway:
        skipped |= GATEWAY_OCTETS
    return frozenset(skipped)


def _parse_all(specs: Iterable[str]) -> list[IPv4Network]:
    return [network for spec in specs for network in parse_spec(spec)]


def iter_expand(
    specs: Iterable[str],
    *,
    avoid_buggy: bool = False,
    avoid_gateway: bool = False,
) -> Iterator[str]:
    """Yield the candidate addresses of ``specs`` in order.

    Every specification is parsed before the first address is yielded, so a
    malformed one raises ``ValidationError`` from the call itself.
    """

    networks = _parse_all(specs)
    skipped = _skipped_octets(avoid_buggy=avoid_buggy, avoid_gateway=avoid_gateway)

    def generate() -> Iterator[str]:
        for network in networks:
            for address in network:
                if int(address) & 0xFF not in skipped:
                    yield str(address)

    return generate()


def expand(
    specs: Iterable[str],
    *,
    avoid_buggy: bool = False,
    avoid_gateway: bool = False,
) -> list[str]:
    """Expand ``specs`` into the ordered list of candidate addresses.

    Results of several specifications are concatenated in order. Addresses
    listed by more than one specification appear more than once.
    """

    return list(iter_expand(specs, avoid_buggy=avoid_buggy, avoid_gateway=avoid_gateway))


def count(
    specs: Iterable[str],
    *,
    avoid_buggy: bool = False,
    avoid_gateway: bool = False,
) -> int:
    """Return ``len(expand(specs, ...))`` without enumerating whole blocks."""

    skipped = _skipped_octets(avoid_buggy=avoid_buggy, avoid_gateway=avoid_gateway)
    total = 0
    for network in _parse_all(specs):
        if network.prefixlen <= 24:
            # every aligned /24 holds each last octet exactly once
            total += network.num_addresses - (network.num_addresses // 256) * len(skipped)
        else:
            total += sum(1 for address in network if int(address) & 0xFF not in skipped)
    return total


def contains(
    specs: Iterable[str],
    address: str,
    *,
    avoid_buggy: bool = False,
    avoid_gateway: bool = False,
) -> bool:
    """Whether ``address`` is one of the candidates of ``specs``."""

    try:
        parsed = IPv4Address(address)
    except ValueError:
        return False
    skipped = _skipped_octets(avoid_buggy=avoid_buggy, avoid_gateway=avoid_gateway)
    if int(parsed) & 0xFF in skipped:
        return False
    return any(parsed in network for network in _parse_all(specs))


def iter_candidates(spec: PoolSpec) -> Iterator[str]:
    """Lazily yield the candidate set of a pool spec."""

    return iter_expand(
        spec.addresses, avoid_buggy=spec.avoid_buggy, avoid_gateway=spec.avoid_gateway
    )


def candidates(spec: PoolSpec) -> list[str]:
    """Expand the candidate set of a pool spec."""

    return list(iter_candidates(spec))


def is_candidate(spec: PoolSpec, address: str) -> bool:
    return contains(
        spec.addresses, address, avoid_buggy=spec.avoid_buggy, avoid_gateway=spec.avoid_gateway
    )


def capacity(spec: PoolSpec) -> int:
    """Number of candidates of a pool spec, duplicates included."""

    return count(spec.addresses, avoid_buggy=spec.avoid_buggy, avoid_gateway=spec.avoid_gateway)


__all__ = [
    "BUGGY_OCTETS",
    "GATEWAY_OCTETS",
    "candidates",
    "capacity",
    "contains",
    "count",
    "expand",
    "is_candidate",
    "iter_candidates",
    "iter_expand",
    "normalize_address",
    "parse_address",
    "parse_spec",
]
