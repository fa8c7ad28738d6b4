from __future__ import annotations

from typing import List, Optional, Tuple

from tf2dnn.dnn_builder.ir import GraphDef, parse_pin
from tf2dnn.utils.enums import IDENTITY_OPS
from tf2dnn.utils.logging import debug


def get_next_layers(
    graph: GraphDef,
    name: str,
    op: Optional[str] = None,
) -> List[Tuple[str, int]]:
    """(consumer name, consumer index) for every input that reads ``name``.

    A consumer reading the node through several inputs is listed once per input.
    """
    consumers: List[Tuple[str, int]] = []
    for idx, node in enumerate(graph):
        if op is not None and node.op != op:
            continue
        for ref in node.inputs:
            if parse_pin(ref).name == name:
                consumers.append((node.name, idx))
    return consumers


def exclude_layer(
    graph: GraphDef,
    index: int,
    input_slot: int,
    remove_from_net: bool = True,
) -> None:
    """Bypass the node at ``index``: its consumers read its ``input_slot``-th input instead."""
    excluded = graph.node(index)
    replacement = excluded.inputs[input_slot]
    for consumer_name, consumer_idx in get_next_layers(graph, excluded.name):
        consumer = graph.node(consumer_idx)
        for input_idx, ref in enumerate(consumer.inputs):
            pin = parse_pin(ref)
            if pin.name == excluded.name and pin.slot == 0:
                consumer.inputs[input_idx] = replacement
    if remove_from_net:
        graph.remove(index)


def remove_identity_ops(graph: GraphDef) -> int:
    removed = 0
    for node in graph:
        if node.op not in IDENTITY_OPS or len(node.inputs) != 1:
            continue
        exclude_layer(graph, graph.index_of(node.name), 0, remove_from_net=True)
        removed += 1
    if removed > 0:
        debug(f"identity ops removed: {removed}")
    return removed
