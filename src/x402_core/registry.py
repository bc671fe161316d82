"""
SchemeRegistry - (version, network, scheme) -> implementation lookup

Used by the client, the resource server and the facilitator, each with its own
instance. Registration is expected to finish before the first request is served:
concurrent reads are safe, registering while traffic is flowing is unsupported.
Call :meth:`SchemeRegistry.freeze` once setup is complete to enforce that.
"""

import logging
from typing import Any, Generic, Iterator, NamedTuple, TypeVar

from x402_core.exceptions import RegistryFrozenError
from x402_core.types import family_wildcard, is_wildcard

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RegistryEntry(NamedTuple):
    x402_version: int
    network: str
    scheme: str
    implementation: Any


class SchemeRegistry(Generic[T]):
    """
    Three-level lookup: protocol version -> network -> scheme -> implementation.

    ``network`` may be a concrete network (``eip155:8453``) or a family wildcard
    (``eip155:*``). An exact network registration always wins over the family
    wildcard, whatever the registration order. Registering the same exact key
    twice replaces the earlier implementation (last write wins).
    """

    def __init__(self) -> None:
        self._entries: dict[int, dict[str, dict[str, T]]] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Make the registry read-only"""
        self._frozen = True

    def register(self, x402_version: int, network: str, scheme: str, implementation: T) -> None:
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register {scheme} on {network} (v{x402_version}): registry is frozen"
            )
        networks = self._entries.setdefault(x402_version, {})
        schemes = networks.setdefault(network, {})
        if scheme in schemes:
            logger.debug(f"Replacing implementation for v{x402_version} {network}/{scheme}")
        schemes[scheme] = implementation

    def resolve(self, x402_version: int, network: str, scheme: str) -> T | None:
        """Return the implementation for the key, or None if nothing matches"""
        networks = self._entries.get(x402_version)
        if not networks:
            return None

        exact = networks.get(network, {}).get(scheme)
        if exact is not None:
            return exact

        if is_wildcard(network):
            return None
        return networks.get(family_wildcard(network), {}).get(scheme)

    def resolve_all_for_network(self, x402_version: int, network: str) -> dict[str, T]:
        """Return every scheme available for *network*, exact entries overriding wildcards"""
        networks = self._entries.get(x402_version)
        if not networks:
            return {}

        result: dict[str, T] = {}
        if not is_wildcard(network):
            result.update(networks.get(family_wildcard(network), {}))
        result.update(networks.get(network, {}))
        return result

    def entries(self) -> Iterator[RegistryEntry]:
        for version, networks in self._entries.items():
            for network, schemes in networks.items():
                for scheme, implementation in schemes.items():
                    yield RegistryEntry(version, network, scheme, implementation)

    def versions(self) -> list[int]:
        return sorted(self._entries)

    def describe(self) -> list[str]:
        """Human readable ``v2 eip155:*/exact`` strings, used in diagnostics"""
        return [f"v{e.x402_version} {e.network}/{e.scheme}" for e in self.entries()]

    def __len__(self) -> int:
        return sum(1 for _ in self.entries())
