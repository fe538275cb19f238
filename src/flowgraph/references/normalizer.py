"""Canonicalize the reference encodings found inside component definitions.

Three shapes are accepted:

- an object carrying ``domain``, ``flow``, ``key`` and ``version``;
- an object carrying a single path-like ``ref`` string
  (``{"ref": "Tasks/send-email.json"}``);
- a bare string, either ``domain/flow/key@version`` or a path.

Shape sniffing happens only in :func:`classify_reference`; everything else
works with the tagged variants it returns.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

from ..models import COMPONENT_FLOWS, ComponentRef, ComponentType

DEFAULT_DOMAIN = "core"
DEFAULT_VERSION = "1.0.0"

_REF_STRING_RE = re.compile(r"^([^/]+)/([^/]+)/([^@]+)@(.+)$")

# Order matters: "workflow" must not shadow the more specific fragments.
_DIRECTORY_FRAGMENTS: tuple[tuple[str, ComponentType], ...] = (
    ("task", ComponentType.TASK),
    ("schema", ComponentType.SCHEMA),
    ("view", ComponentType.VIEW),
    ("function", ComponentType.FUNCTION),
    ("extension", ComponentType.EXTENSION),
    ("workflow", ComponentType.WORKFLOW),
    ("flow", ComponentType.WORKFLOW),
)


@dataclass(frozen=True, slots=True)
class ExplicitRef:
    domain: str
    flow: str
    key: str
    version: str


@dataclass(frozen=True, slots=True)
class PathRef:
    path: str


Reference = Union[ExplicitRef, PathRef]


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _classify_string(value: str) -> Reference | None:
    s = value.strip()
    m = _REF_STRING_RE.match(s)
    if m:
        return ExplicitRef(domain=m.group(1), flow=m.group(2), key=m.group(3), version=m.group(4))
    if "/" in s:
        return PathRef(path=s)
    return None


def classify_reference(value: Any) -> Reference | None:
    """Decide which reference shape `value` has, if any."""
    if isinstance(value, str):
        return _classify_string(value)

    if isinstance(value, Mapping):
        fields = [value.get(f) for f in ("domain", "flow", "key", "version")]
        if all(isinstance(f, (str, int, float)) and _text(f) for f in fields):
            domain, flow, key, version = (_text(f) for f in fields)
            return ExplicitRef(domain=domain, flow=flow, key=key, version=version)

        ref = value.get("ref")
        if isinstance(ref, str):
            return _classify_string(ref)

    return None


def infer_type_from_path(path: str) -> ComponentType | None:
    """Component type implied by the first segment of a path, if any."""
    parts = [p for p in re.split(r"[\\/]+", path.strip()) if p]
    if not parts:
        return None
    directory = parts[0].lower()
    for fragment, component_type in _DIRECTORY_FRAGMENTS:
        if fragment in directory:
            return component_type
    return None


def _key_from_filename(filename: str) -> str:
    return re.sub(r"\.json$", "", filename, flags=re.IGNORECASE)


def resolve_reference(
    ref: Reference | None,
    *,
    default_domain: str = DEFAULT_DOMAIN,
    default_version: str = DEFAULT_VERSION,
) -> ComponentRef | None:
    """Turn a classified reference into a canonical, lower-cased ComponentRef."""
    if ref is None:
        return None

    if isinstance(ref, ExplicitRef):
        domain, flow, key, version = ref.domain, ref.flow, ref.key, ref.version
    else:
        parts = [p for p in re.split(r"[\\/]+", ref.path.strip()) if p]
        if len(parts) < 2:
            return None
        component_type = infer_type_from_path(ref.path)
        if component_type is None:
            return None
        domain = default_domain
        flow = COMPONENT_FLOWS[component_type]
        key = _key_from_filename(parts[-1])
        version = default_version

    fields = [_text(x).lower() for x in (domain, flow, key, version)]
    if not all(fields):
        return None
    return ComponentRef(domain=fields[0], flow=fields[1], key=fields[2], version=fields[3])


def normalize_reference(
    value: Any,
    *,
    default_domain: str = DEFAULT_DOMAIN,
    default_version: str = DEFAULT_VERSION,
) -> ComponentRef | None:
    """Canonical ComponentRef for `value`, or None when it is not a reference."""
    return resolve_reference(
        classify_reference(value),
        default_domain=default_domain,
        default_version=default_version,
    )
