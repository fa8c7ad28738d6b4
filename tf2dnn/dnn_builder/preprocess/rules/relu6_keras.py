from __future__ import annotations

from typing import Any, Dict, Optional

import numpy as np

from tf2dnn.dnn_builder.ir import GraphDef, NodeDef, parse_pin
from tf2dnn.dnn_builder.preprocess.pipeline import register_preprocess_rule
from tf2dnn.dnn_builder.surgery import get_next_layers

RELU6_KERAS_RULE_ID = "relu6_keras"


def _const_scalar(graph: GraphDef, ref: str) -> Optional[float]:
    node = graph.get(parse_pin(ref).name)
    if node is None or node.op != "Const" or "value" not in node.attr:
        return None
    data = np.asarray(node.attr["value"].tensor.data).reshape(-1)
    if data.size != 1:
        return None
    return float(data[0])


def _producer(graph: GraphDef, ref: str, op: str) -> Optional[NodeDef]:
    node = graph.get(parse_pin(ref).name)
    if node is None or node.op != op:
        return None
    return node


def fuse_relu6_keras(graph: GraphDef) -> Dict[str, Any]:
    """Minimum(Relu(x), 6) -> Relu6(x), the form Keras emits for relu(max_value=6)."""
    matched = 0
    rewritten = 0
    for node in graph:
        if node.op != "Minimum" or len(node.inputs) != 2:
            continue
        for relu_slot in [0, 1]:
            relu = _producer(graph, node.inputs[relu_slot], "Relu")
            bound = _const_scalar(graph, node.inputs[1 - relu_slot])
            if relu is None or bound != 6.0:
                continue
            matched += 1
            if len(get_next_layers(graph, relu.name)) != 1 or len(relu.inputs) != 1:
                break
            node.op = "Relu6"
            node.inputs = [relu.inputs[0]]
            node.attr = {k: v for k, v in node.attr.items() if k == "T"}
            graph.remove(graph.index_of(relu.name))
            rewritten += 1
            break
    return {
        "matched_nodes": matched,
        "rewritten_nodes": rewritten,
        "changed": rewritten > 0,
    }


def register_relu6_keras_rule() -> None:
    register_preprocess_rule(
        rule_id=RELU6_KERAS_RULE_ID,
        callback=fuse_relu6_keras,
        overwrite=True,
    )
