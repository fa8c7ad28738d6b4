from __future__ import annotations

import math
from typing import Dict, Iterator, List, Optional, Set

import numpy as np

from tf2dnn.dnn_builder.errors import UnsupportedQuantization
from tf2dnn.dnn_builder.ir import GraphDef, NodeDef, TensorValue, has_attr, parse_pin
from tf2dnn.utils.enums import BLOB_FLOAT_DTYPES
from tf2dnn.utils.logging import debug

DEQUANTIZE_ROUNDING_MODES = ["none", "half_up", "half_even"]


class ConstantTable:
    """Name -> Const node across both input graphs.

    The owning graph is tracked per entry so a folded constant can be renamed
    in the graph that actually holds it.
    """

    def __init__(self) -> None:
        self._nodes: Dict[str, NodeDef] = {}
        self._owners: Dict[str, GraphDef] = {}

    def add(self, node: NodeDef, owner: Optional[GraphDef] = None) -> bool:
        if node.name in self._nodes:
            debug(f"Constant already registered, keeping the first definition: {node.name}")
            return False
        self._nodes[node.name] = node
        if owner is not None:
            self._owners[node.name] = owner
        return True

    def get(self, name: str) -> Optional[NodeDef]:
        return self._nodes.get(name, None)

    def tensor(self, name: str) -> TensorValue:
        return self._nodes[name].attr["value"].tensor

    def rename(self, old_name: str, new_name: str) -> NodeDef:
        node = self._nodes.pop(old_name)
        owner = self._owners.pop(old_name, None)
        if owner is not None and old_name in owner:
            owner.rename(old_name, new_name)
        else:
            node.name = new_name
        self._nodes[new_name] = node
        if owner is not None:
            self._owners[new_name] = owner
        return node

    def names(self) -> List[str]:
        return list(self._nodes.keys())

    def __contains__(self, name: str) -> bool:
        return name in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._nodes.keys()))


def _dequantize_offset(min_value: float, scale: float, rounding: str) -> float:
    if rounding == "none" or scale == 0.0:
        return float(min_value)
    steps = float(min_value) / float(scale)
    if rounding == "half_up":
        return float(math.floor(steps + 0.5)) * float(scale)
    # round() is round-half-to-even
    return float(round(steps)) * float(scale)


def _read_range_value(table: ConstantTable, name: str, dq_node: NodeDef) -> float:
    tensor = table.tensor(name)
    if tensor.dtype not in BLOB_FLOAT_DTYPES or int(np.asarray(tensor.data).size) != 1:
        raise UnsupportedQuantization(
            f"Dequantize range input must be a single float value: {name}",
            node_name=dq_node.name,
            node_op=dq_node.op,
        )
    return float(np.asarray(tensor.data).reshape(-1)[0])


def fold_dequantize(
    graph: GraphDef,
    node: NodeDef,
    table: ConstantTable,
    layers_to_ignore: Set[str],
    rounding: str = "none",
) -> None:
    if len(node.inputs) != 3:
        raise UnsupportedQuantization(
            f"Dequantize expects 3 inputs (tensor, min, max), got {len(node.inputs)}.",
            node_name=node.name,
            node_op=node.op,
        )
    input_names = [parse_pin(v).name for v in node.inputs]
    for input_name in input_names:
        if input_name not in table:
            raise UnsupportedQuantization(
                f"Dequantize input is not a constant: {input_name}",
                node_name=node.name,
                node_op=node.op,
            )
    mode = node.attr["mode"].s if has_attr(node, "mode") else ""
    if mode != "MIN_FIRST":
        raise UnsupportedQuantization(
            f"Only MIN_FIRST dequantization is supported. mode={mode}",
            node_name=node.name,
            node_op=node.op,
        )
    quantized = table.tensor(input_names[0])
    if quantized.dtype != "DT_QUINT8":
        raise UnsupportedQuantization(
            f"Only DT_QUINT8 tensors can be dequantized. dtype={quantized.dtype}",
            node_name=node.name,
            node_op=node.op,
        )
    min_value = _read_range_value(table, input_names[1], node)
    max_value = _read_range_value(table, input_names[2], node)
    scale = (max_value - min_value) / 255.0
    if scale < 0.0:
        raise UnsupportedQuantization(
            f"Dequantize range is inverted. min={min_value} max={max_value}",
            node_name=node.name,
            node_op=node.op,
        )
    offset = _dequantize_offset(min_value, scale, rounding)

    raw = np.asarray(quantized.data).reshape(-1).astype(np.float32)
    quantized.data = (raw * np.float32(scale) + np.float32(offset)).astype(np.float32)
    quantized.dtype = "DT_FLOAT"

    # The folded constant takes over the Dequantize node's name.
    dq_index = graph.index_of(node.name)
    if dq_index >= 0:
        graph.remove(dq_index)
    table.rename(input_names[0], node.name)
    layers_to_ignore.add(node.name)


def add_const_nodes(
    graph: GraphDef,
    table: ConstantTable,
    layers_to_ignore: Set[str],
    dequantize_rounding: str = "none",
) -> None:
    if dequantize_rounding not in DEQUANTIZE_ROUNDING_MODES:
        raise ValueError(
            f"dequantize_rounding must be one of {DEQUANTIZE_ROUNDING_MODES}. "
            f"got: {dequantize_rounding}"
        )
    for node in graph:
        if node.op == "Dequantize":
            fold_dequantize(
                graph,
                node,
                table,
                layers_to_ignore,
                rounding=dequantize_rounding,
            )
            continue
        if node.op != "Const":
            continue
        if has_attr(node, "value"):
            table.add(node, owner=graph)
        layers_to_ignore.add(node.name)
