from flowgraph.hashing import (
    canonical_json,
    extract_api_signature,
    extract_config,
    extract_label,
    hash_api_signature,
    hash_config,
    stable_hash,
)
from flowgraph.models import ComponentType


def _workflow(**extra):
    return {
        "key": "onboarding",
        "type": "F",
        "timeout": {"duration": "PT1H"},
        "startTransition": {"key": "start", "target": "collect"},
        "states": [
            {
                "key": "collect",
                "stateType": 1,
                "labels": [{"label": "Collect", "language": "en-US"}],
                "transitions": [{"key": "submit", "target": "done", "triggerType": 0, "schema": None}],
            },
            {"key": "done", "stateType": 3},
        ],
        **extra,
    }


def test_canonical_json_ignores_key_order():
    assert canonical_json({"b": 1, "a": {"d": 2, "c": 3}}) == canonical_json({"a": {"c": 3, "d": 2}, "b": 1})
    assert canonical_json({"a": [1, 2]}) == '{"a":[1,2]}'


def test_stable_hash():
    assert stable_hash(None) is None
    digest = stable_hash({"a": 1})
    assert len(digest) == 64
    assert digest == stable_hash({"a": 1})
    assert digest != stable_hash({"a": 2})


def test_key_order_does_not_change_hashes():
    a = _workflow()
    b = dict(reversed(list(_workflow().items())))
    assert hash_api_signature(a, "workflow") == hash_api_signature(b, "workflow")
    assert hash_config(a, "workflow") == hash_config(b, "workflow")


def test_workflow_signature_ignores_presentation():
    changed = _workflow()
    changed["states"][0]["labels"] = [{"label": "Gather", "language": "en-US"}]
    assert hash_api_signature(changed, ComponentType.WORKFLOW) == hash_api_signature(_workflow(), ComponentType.WORKFLOW)


def test_workflow_signature_shape():
    sig = extract_api_signature(_workflow(), ComponentType.WORKFLOW)
    assert sig["startTransition"] == {"key": "start", "target": "collect"}
    assert sig["states"][0] == {
        "key": "collect",
        "stateType": 1,
        "transitions": [{"key": "submit", "target": "done", "triggerType": 0}],
    }
    assert sig["states"][1]["transitions"] is None


def test_task_api_and_config_are_independent():
    base = {"parameters": {"to": "string"}, "output": {"ok": "bool"}, "taskType": "6", "config": {"url": "a"}}
    new_config = {**base, "config": {"url": "b"}}
    new_params = {**base, "parameters": {"to": "string", "cc": "string"}}

    assert hash_api_signature(base, "task") == hash_api_signature(new_config, "task")
    assert hash_config(base, "task") != hash_config(new_config, "task")
    assert hash_api_signature(base, "task") != hash_api_signature(new_params, "task")


def test_schema_and_view_fallbacks():
    assert extract_api_signature({"schema": {"type": "object"}}, "schema") == {"type": "object"}
    assert extract_api_signature({"properties": {"a": 1}}, "schema") == {"a": 1}
    assert extract_api_signature({"components": ["x"]}, "view") == ["x"]


def test_types_without_contract_hash_to_none():
    assert hash_api_signature({"code": "x"}, ComponentType.FUNCTION) is None
    assert hash_api_signature({"code": "x"}, ComponentType.EXTENSION) is None
    assert hash_api_signature({}, ComponentType.TASK) is None
    assert hash_config(None, ComponentType.TASK) is None


def test_extract_config():
    assert extract_config({"taskType": "6", "config": {"url": "a"}, "features": []}, "task") == {
        "taskType": "6",
        "config": {"url": "a"},
    }
    cfg = extract_config(_workflow(functions=["f1"]), "workflow")
    assert cfg == {"timeout": {"duration": "PT1H"}, "type": "F", "functions": ["f1"]}


def test_extract_label():
    labels = [{"label": "Hesap", "language": "tr-TR"}, {"label": "Account", "language": "en-US"}]
    assert extract_label({"labels": labels}) == "Account"
    assert extract_label({"labels": [{"label": "Hesap", "language": "tr-TR"}]}) == "Hesap"
    assert extract_label({"label": "Plain"}) == "Plain"
    assert extract_label({"name": "by-name"}) == "by-name"
    assert extract_label({}) is None
    assert extract_label(None) is None
