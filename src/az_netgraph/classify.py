from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern

from .intents import INTERNET
from .util.errors import UnrecognizedHopResourceId


@dataclass(frozen=True)
class HopClassification:
    resource_type: str
    name: str
    resource_id: str
    link_source: bool = True

    @property
    def is_internet(self) -> bool:
        return self.resource_type == INTERNET


INTERNET_CLASSIFICATION = HopClassification(
    resource_type=INTERNET,
    name=INTERNET,
    resource_id=INTERNET,
    link_source=False,
)


@dataclass(frozen=True)
class HopPattern:
    """
    One entry of the hop classification table.

    ``hop_pattern`` matches the raw resource id reported for a hop and
    ``canonical_pattern`` matches the id after truncation. Both must expose the
    named groups ``id`` (canonical resource id) and ``name``.
    """

    resource_type: str
    hop_pattern: Pattern[str]
    canonical_pattern: Pattern[str]
    link_source: bool = True

    def match_hop(self, resource_id: str) -> Optional[HopClassification]:
        return self._match(self.hop_pattern, resource_id)

    def match_canonical(self, resource_id: str) -> Optional[HopClassification]:
        return self._match(self.canonical_pattern, resource_id)

    def _match(self, pattern: Pattern[str], resource_id: str) -> Optional[HopClassification]:
        m = pattern.match(resource_id)
        if not m:
            return None
        return HopClassification(
            resource_type=self.resource_type,
            name=m.group("name"),
            resource_id=m.group("id"),
            link_source=self.link_source,
        )


def _network_pattern(resource_type: str, *, sub_resource: Optional[str] = None) -> HopPattern:
    base = rf"(?P<id>.*/providers/Microsoft\.Network/{resource_type}/(?P<name>[^/]+))"
    if sub_resource:
        hop = rf"^{base}/{sub_resource}/.+$"
    else:
        hop = rf"^{base}$"
    return HopPattern(
        resource_type=resource_type,
        hop_pattern=re.compile(hop, re.IGNORECASE),
        canonical_pattern=re.compile(rf"^{base}$", re.IGNORECASE),
    )


class HopPatternRegistry:
    """
    Ordered table of hop patterns; the first registered match wins.
    """

    def __init__(self) -> None:
        self._patterns: List[HopPattern] = []

    def register(self, pattern: HopPattern) -> None:
        self._patterns = [p for p in self._patterns if p.resource_type != pattern.resource_type]
        self._patterns.append(pattern)

    def unregister(self, resource_type: str) -> None:
        self._patterns = [p for p in self._patterns if p.resource_type != resource_type]

    def resource_types(self) -> List[str]:
        return [p.resource_type for p in self._patterns]

    def match_hop(self, resource_id: str) -> Optional[HopClassification]:
        for pattern in self._patterns:
            found = pattern.match_hop(resource_id)
            if found is not None:
                return found
        return None

    def match_canonical(self, resource_id: str) -> Optional[HopClassification]:
        for pattern in self._patterns:
            found = pattern.match_canonical(resource_id)
            if found is not None:
                return found
        return None


def default_registry() -> HopPatternRegistry:
    registry = HopPatternRegistry()
    registry.register(_network_pattern("networkInterfaces", sub_resource="ipConfigurations"))
    registry.register(_network_pattern("virtualNetworkGateways"))
    return registry


_global_registry = default_registry()


def register_hop_pattern(pattern: HopPattern) -> None:
    _global_registry.register(pattern)


def get_hop_registry() -> HopPatternRegistry:
    return _global_registry


def match_hop(resource_id: str, registry: Optional[HopPatternRegistry] = None) -> Optional[HopClassification]:
    """
    Classify a hop resource id, returning None when nothing matches.
    """
    if resource_id == INTERNET:
        return INTERNET_CLASSIFICATION
    return (registry or _global_registry).match_hop(resource_id)


def classify_hop(resource_id: str, registry: Optional[HopPatternRegistry] = None) -> HopClassification:
    found = match_hop(resource_id, registry)
    if found is None:
        raise UnrecognizedHopResourceId(resource_id)
    return found


def match_canonical(resource_id: str, registry: Optional[HopPatternRegistry] = None) -> Optional[HopClassification]:
    """
    Classify an already canonical id (as stored in a hop resolution table).
    """
    if resource_id == INTERNET:
        return INTERNET_CLASSIFICATION
    return (registry or _global_registry).match_canonical(resource_id)
