from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from tf2dnn.dnn_builder.ir import GraphDef
from tf2dnn.utils.logging import debug

PreprocessRuleCallback = Callable[[GraphDef], Optional[Dict[str, Any]]]


@dataclass(frozen=True)
class PreprocessRule:
    rule_id: str
    callback: PreprocessRuleCallback


_RULES: "OrderedDict[str, PreprocessRule]" = OrderedDict()


def register_preprocess_rule(
    *,
    rule_id: str,
    callback: PreprocessRuleCallback,
    overwrite: bool = False,
) -> None:
    rid = str(rule_id).strip()
    if rid == "":
        raise ValueError("preprocess rule_id must not be empty.")
    if not callable(callback):
        raise TypeError("preprocess callback must be callable.")
    if rid in _RULES and not overwrite:
        raise ValueError(f"preprocess rule already exists: {rid}")
    _RULES[rid] = PreprocessRule(rule_id=rid, callback=callback)


def clear_preprocess_rules() -> None:
    _RULES.clear()


def get_registered_preprocess_rule_ids() -> List[str]:
    return list(_RULES.keys())


def _resolve_rule_ids(enabled_rule_ids: Optional[Sequence[str]]) -> List[str]:
    if enabled_rule_ids is None:
        return get_registered_preprocess_rule_ids()
    rule_ids = [str(v) for v in enabled_rule_ids]
    unknown = sorted(set(rule_ids) - set(_RULES.keys()))
    if len(unknown) > 0:
        raise ValueError(f"Unknown preprocess rule id(s): {unknown}")
    return rule_ids


def _rule_entry(rule_id: str, result: Any) -> Dict[str, Any]:
    result = result if isinstance(result, dict) else {}
    matched = max(int(result.get("matched_nodes", 0)), 0)
    rewritten = max(int(result.get("rewritten_nodes", 0)), 0)
    return {
        "rule_id": rule_id,
        "matched_nodes": matched,
        "rewritten_nodes": rewritten,
        "changed": bool(result.get("changed", rewritten > 0)),
        "message": str(result.get("message", "")),
    }


def run_preprocess_pipeline(
    *,
    graph: GraphDef,
    enabled_rule_ids: Optional[Sequence[str]] = None,
    inplace: bool = False,
) -> Tuple[GraphDef, Dict[str, Any]]:
    """Apply simplification rules in registration order (or the given order).

    Returns the rewritten graph and a JSON-serializable report. The input graph
    is left untouched unless ``inplace`` is set.
    """
    rule_ids = _resolve_rule_ids(enabled_rule_ids)
    working = graph if inplace else graph.copy()
    nodes_before = len(working)

    applied: List[Dict[str, Any]] = []
    for rule_id in rule_ids:
        entry = _rule_entry(rule_id, _RULES[rule_id].callback(working))
        debug(
            f"preprocess rule {rule_id}: "
            f"matched={entry['matched_nodes']} rewritten={entry['rewritten_nodes']}"
        )
        applied.append(entry)

    report = {
        "schema_version": 1,
        "registered_rule_ids": get_registered_preprocess_rule_ids(),
        "enabled_rule_ids": rule_ids,
        "applied_rules": applied,
        "summary": {
            "executed_rule_count": len(applied),
            "changed_rule_count": len([r for r in applied if r["changed"]]),
            "total_matched_nodes": sum(r["matched_nodes"] for r in applied),
            "total_rewritten_nodes": sum(r["rewritten_nodes"] for r in applied),
            "node_count_before": nodes_before,
            "node_count_after": len(working),
        },
    }
    return working, report
