from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any

from .models import ComponentType


def canonical_json(value: Any) -> str:
    """JSON with recursively sorted keys and no insignificant whitespace."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def stable_hash(value: Any) -> str | None:
    if value is None:
        return None
    return hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()


def _transition_signature(transitions: Any) -> list[dict[str, Any]] | None:
    if not isinstance(transitions, list):
        return None
    return [
        {"key": t.get("key"), "target": t.get("target"), "triggerType": t.get("triggerType")}
        for t in transitions
        if isinstance(t, Mapping)
    ]


def _workflow_signature(d: Mapping[str, Any]) -> dict[str, Any]:
    states = d.get("states")
    state_sigs = None
    if isinstance(states, list):
        state_sigs = [
            {
                "key": s.get("key"),
                "stateType": s.get("stateType"),
                "transitions": _transition_signature(s.get("transitions")),
            }
            for s in states
            if isinstance(s, Mapping)
        ]

    start = d.get("startTransition")
    return {
        "states": state_sigs,
        "startTransition": {"key": start.get("key"), "target": start.get("target")}
        if isinstance(start, Mapping)
        else None,
    }


def extract_api_signature(definition: Any, component_type: ComponentType | str) -> Any:
    """The parts of a definition that callers depend on.

    Returns None for component types without a known contract shape.
    """
    if not isinstance(definition, Mapping) or not definition:
        return None

    ct = ComponentType(component_type)
    if ct is ComponentType.WORKFLOW:
        return _workflow_signature(definition)
    if ct is ComponentType.TASK:
        return {"parameters": definition.get("parameters"), "output": definition.get("output")}
    if ct is ComponentType.SCHEMA:
        return definition.get("schema") if definition.get("schema") is not None else definition.get("properties")
    if ct is ComponentType.VIEW:
        return definition.get("view") if definition.get("view") is not None else definition.get("components")
    return None


def extract_config(definition: Any, component_type: ComponentType | str) -> dict[str, Any] | None:
    """Behavior-affecting fields that do not change a component's contract."""
    if not isinstance(definition, Mapping) or not definition:
        return None

    config: dict[str, Any] = {}
    for name in ("timeout", "features", "extensions"):
        if definition.get(name):
            config[name] = definition[name]

    ct = ComponentType(component_type)
    if ct is ComponentType.WORKFLOW:
        config["type"] = definition.get("type")
        config["functions"] = definition.get("functions")
    elif ct is ComponentType.TASK:
        config["taskType"] = definition.get("taskType")
        config["config"] = definition.get("config")
    return config


def hash_api_signature(definition: Any, component_type: ComponentType | str) -> str | None:
    return stable_hash(extract_api_signature(definition, component_type))


def hash_config(definition: Any, component_type: ComponentType | str) -> str | None:
    return stable_hash(extract_config(definition, component_type))


def extract_label(definition: Any) -> str | None:
    """Display label, preferring English entries of a multi-language list."""
    if not isinstance(definition, Mapping):
        return None

    labels = definition.get("labels")
    if isinstance(labels, list) and labels:
        entries = [x for x in labels if isinstance(x, Mapping)]
        for entry in entries:
            if entry.get("language") in ("en-US", "en") and entry.get("label"):
                return str(entry["label"])
        if entries and entries[0].get("label"):
            return str(entries[0]["label"])

    for name in ("label", "name"):
        value = definition.get(name)
        if isinstance(value, str) and value:
            return value
    return None
