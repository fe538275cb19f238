from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..models import ComponentRef, ComponentType
from .normalizer import DEFAULT_DOMAIN, DEFAULT_VERSION, normalize_reference

# Fields that never hold references; traversing them only produces false positives.
EXCLUDED_FIELDS = frozenset(
    {
        "label",
        "labels",
        "caption",
        "captions",
        "code",
        "location",
        "mapping",
        "rule",
        "timer",
        "versionstrategy",
    }
)

_TYPE_FRAGMENTS: tuple[tuple[tuple[str, ...], ComponentType], ...] = (
    (("task",), ComponentType.TASK),
    (("schema",), ComponentType.SCHEMA),
    (("view",), ComponentType.VIEW),
    (("function",), ComponentType.FUNCTION),
    (("extension", "feature"), ComponentType.EXTENSION),
    (("subflow", "process", "workflow", "flow"), ComponentType.WORKFLOW),
)


@dataclass(frozen=True, slots=True)
class ExtractedReference:
    ref: ComponentRef
    type: ComponentType


def _match_fragment(text: str) -> ComponentType | None:
    lowered = text.lower()
    for fragments, component_type in _TYPE_FRAGMENTS:
        if any(f in lowered for f in fragments):
            return component_type
    return None


def infer_reference_type(field_name: str, ancestors: list[str]) -> ComponentType:
    """Type of a reference from the field holding it, then from its ancestors."""
    return (
        _match_fragment(field_name)
        or _match_fragment(".".join(ancestors))
        or ComponentType.WORKFLOW
    )


def unwrap_definition(definition: Any) -> Any:
    if isinstance(definition, Mapping) and isinstance(definition.get("attributes"), Mapping):
        return definition["attributes"]
    return definition


def extract_references(
    definition: Any,
    *,
    default_domain: str = DEFAULT_DOMAIN,
    default_version: str = DEFAULT_VERSION,
) -> list[ExtractedReference]:
    """Every component reference embedded in a definition, in discovery order.

    The root object is the component being inspected and is never recorded as
    a reference to itself. A resolved reference is a leaf: traversal does not
    descend into it. Duplicates (same ComponentId) are reported once.
    """
    root = unwrap_definition(definition)
    if not isinstance(root, (Mapping, list)):
        return []

    found: list[ExtractedReference] = []
    seen: set[str] = set()

    def visit(value: Any, path: list[str], *, is_root: bool = False) -> None:
        if isinstance(value, Mapping):
            if not is_root:
                ref = normalize_reference(
                    value, default_domain=default_domain, default_version=default_version
                )
                if ref is not None:
                    if ref.id not in seen:
                        seen.add(ref.id)
                        field_name = path[-1] if path else ""
                        found.append(
                            ExtractedReference(
                                ref=ref, type=infer_reference_type(field_name, path[:-1])
                            )
                        )
                    return

            for k, v in value.items():
                name = str(k)
                if name.lower() in EXCLUDED_FIELDS:
                    continue
                visit(v, path + [name])

        elif isinstance(value, list):
            # List items inherit the field name of the list itself.
            for item in value:
                visit(item, path)

    visit(root, [], is_root=True)
    return found
