from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from .util.errors import MalformedResourceId

_SUBSCRIPTIONS = "subscriptions"
_RESOURCE_GROUPS = "resourceGroups"
_PROVIDERS = "providers"


@dataclass(frozen=True)
class ResourceIdentifier:
    """
    Decoded ARM resource id.

    For nested resources ``resource_type`` is the slash-joined type chain
    (``virtualNetworks/subnets``) and ``parent_names`` holds the names of the
    enclosing resources, outermost first.
    """

    subscription_id: str
    resource_group: str
    provider_namespace: str
    resource_type: str
    resource_name: str
    raw_id: str
    parent_names: Tuple[str, ...] = ()

    @property
    def type_segments(self) -> List[str]:
        return self.resource_type.split("/")

    @property
    def is_nested(self) -> bool:
        return bool(self.parent_names)

    def to_id(self) -> str:
        types = self.type_segments
        names = list(self.parent_names) + [self.resource_name]
        tail: List[str] = []
        for type_segment, name in zip(types, names):
            tail.extend([type_segment, name])
        parts = [
            "",
            _SUBSCRIPTIONS,
            self.subscription_id,
            _RESOURCE_GROUPS,
            self.resource_group,
            _PROVIDERS,
            self.provider_namespace,
            *tail,
        ]
        return "/".join(parts)


def parse_resource_id(raw_id: str) -> ResourceIdentifier:
    """
    Decode ``/subscriptions/{sub}/resourceGroups/{rg}/providers/{ns}/{type}/{name}``.

    Literal segments match case-insensitively. Anything after the namespace must
    be one or more ``type/name`` pairs; an odd remainder, an empty segment or a
    trailing slash raises MalformedResourceId.
    """
    if not isinstance(raw_id, str) or not raw_id:
        raise MalformedResourceId(str(raw_id or ""), "empty id")
    if not raw_id.startswith("/"):
        raise MalformedResourceId(raw_id, "must start with '/'")

    segments = raw_id.split("/")[1:]
    if any(not s for s in segments):
        raise MalformedResourceId(raw_id, "empty path segment")
    if len(segments) < 8:
        raise MalformedResourceId(raw_id, "too few segments")

    literals = ((0, _SUBSCRIPTIONS), (2, _RESOURCE_GROUPS), (4, _PROVIDERS))
    for idx, expected in literals:
        if segments[idx].lower() != expected.lower():
            raise MalformedResourceId(raw_id, f"expected '{expected}' at segment {idx + 1}")

    tail = segments[6:]
    if len(tail) % 2 != 0:
        raise MalformedResourceId(raw_id, "resource type and name segments must come in pairs")

    types = tail[0::2]
    names = tail[1::2]
    ident = ResourceIdentifier(
        subscription_id=segments[1],
        resource_group=segments[3],
        provider_namespace=segments[5],
        resource_type="/".join(types),
        resource_name=names[-1],
        raw_id=raw_id,
        parent_names=tuple(names[:-1]),
    )
    if ident.to_id().lower() != raw_id.lower():
        raise MalformedResourceId(raw_id, "decoded fields do not reconstruct the id")
    return ident


def is_resource_id(raw_id: str) -> bool:
    try:
        parse_resource_id(raw_id)
    except MalformedResourceId:
        return False
    return True
