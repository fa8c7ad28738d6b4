from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Union

from tf2dnn.dnn_builder.constants import ConstantTable, add_const_nodes
from tf2dnn.dnn_builder.dispatcher import dispatch_node
from tf2dnn.dnn_builder.errors import (
    DuplicateLayerName,
    ImporterError,
    UnknownInput,
    UnsupportedConfiguration,
)
from tf2dnn.dnn_builder.ir import (
    GraphDef,
    NetIR,
    NodeDef,
    Pin,
    TensorValue,
    parse_pin,
)
from tf2dnn.dnn_builder.layout import predict_output_data_layout
from tf2dnn.dnn_builder.op_registry import get_supported_tf_ops, resolve_node_dispatch
from tf2dnn.dnn_builder.preprocess import run_preprocess_pipeline
from tf2dnn.dnn_builder.surgery import remove_identity_ops as _remove_identity_ops
from tf2dnn.utils.enums import DataLayout
from tf2dnn.utils.logging import Color, debug, error, info, layer_label, node_label

_CONSTANT_OPS = ["Const", "Dequantize"]


class LoweringContext:
    """Mutable state of one lowering pass."""

    def __init__(
        self,
        graph: GraphDef,
        constants: ConstantTable,
        net: NetIR,
        layers_to_ignore: Optional[Set[str]] = None,
        allow_generic_ops: bool = True,
    ):
        self.graph = graph
        self.constants = constants
        self.net = net
        self.layers_to_ignore: Set[str] = set(layers_to_ignore or set())
        self.allow_generic_ops = bool(allow_generic_ops)
        self.layer_ids: Dict[str, int] = {}
        self.input_slots: Dict[str, int] = {}
        self.data_layouts: Dict[str, DataLayout] = {}
        self.generic_ops: List[str] = []

    def ignore(self, name: str) -> None:
        self.layers_to_ignore.add(name)

    def is_const(self, ref: str) -> bool:
        return parse_pin(ref).name in self.constants

    def has_const_input(self, node: NodeDef) -> bool:
        return any(self.is_const(ref) for ref in node.inputs)

    def layout_of(self, ref: Union[str, Pin]) -> DataLayout:
        name = ref.name if isinstance(ref, Pin) else parse_pin(ref).name
        return self.data_layouts.get(name, DataLayout.UNKNOWN)

    def get_const_blob(self, node: NodeDef, input_index: int = -1) -> Tuple[TensorValue, int]:
        """Constant feeding ``node`` and the input position it was found at.

        With ``input_index=-1`` the node must have exactly one constant input.
        """
        if input_index == -1:
            for idx, ref in enumerate(node.inputs):
                if not self.is_const(ref):
                    continue
                if input_index != -1:
                    raise UnsupportedConfiguration(
                        "More than one input is Const op",
                        node_name=node.name,
                        node_op=node.op,
                    )
                input_index = idx
        if input_index == -1:
            raise UnsupportedConfiguration(
                "Const input blob for weights not found",
                node_name=node.name,
                node_op=node.op,
            )
        if input_index >= len(node.inputs):
            raise UnsupportedConfiguration(
                f"input index={input_index} is missing. input_count={len(node.inputs)}",
                node_name=node.name,
                node_op=node.op,
            )
        pin = parse_pin(node.inputs[input_index])
        if pin.name not in self.constants:
            raise UnsupportedConfiguration(
                f"Const kernel input not found: {pin.name}",
                node_name=node.name,
                node_op=node.op,
            )
        if pin.slot != 0:
            raise UnsupportedConfiguration(
                f"Unsupported kernel input: {node.inputs[input_index]}",
                node_name=node.name,
                node_op=node.op,
            )
        return self.constants.tensor(pin.name), input_index

    def register_input(self, name: str) -> int:
        slot = self.net.register_input(name)
        self.input_slots[name] = slot
        self.layer_ids[name] = NetIR.INPUT_LAYER_ID
        return slot

    def add_layer(
        self,
        name: str,
        layer_type: str,
        params: Optional[Dict[str, Any]] = None,
        blobs: Optional[List[Any]] = None,
    ) -> int:
        if name in self.layer_ids:
            raise DuplicateLayerName(f"Layer name already exists in net: {name}")
        layer_id = self.net.add_layer(name, layer_type, params, blobs)
        self.layer_ids[name] = layer_id
        return layer_id

    def alias_layer(self, name: str, layer_id: int) -> None:
        self.layer_ids[name] = layer_id

    def connect(self, ref: Union[str, Pin], dst_id: int, dst_slot: int) -> None:
        pin = ref if isinstance(ref, Pin) else parse_pin(ref)
        if pin.name not in self.layer_ids:
            raise UnknownInput(f"Input layer not found: {pin.name}")
        src_slot = self.input_slots[pin.name] if pin.name in self.input_slots else pin.slot
        self.net.connect(self.layer_ids[pin.name], src_slot, dst_id, dst_slot)

    def connect_to_all_blobs(self, ref: Union[str, Pin], dst_id: int, input_count: int) -> None:
        for dst_slot in range(int(input_count)):
            self.connect(ref, dst_id, dst_slot)


def _prepare_graphs(
    net_bin: Optional[GraphDef],
    net_txt: Optional[GraphDef],
    remove_identity_ops: bool,
    enabled_rule_ids: Optional[Sequence[str]],
) -> Tuple[GraphDef, GraphDef, Optional[Dict[str, Any]]]:
    net_bin = net_bin.copy() if net_bin is not None else GraphDef()
    net_txt = net_txt.copy() if net_txt is not None else GraphDef()
    if remove_identity_ops:
        _remove_identity_ops(net_bin)
        _remove_identity_ops(net_txt)
    preprocess_report = None
    # A text override defines the topology itself, so it is never rewritten.
    if net_txt.is_empty():
        net_bin, preprocess_report = run_preprocess_pipeline(
            graph=net_bin,
            enabled_rule_ids=enabled_rule_ids,
            inplace=True,
        )
    return net_bin, net_txt, preprocess_report


def lower_tf_to_net(
    net_bin: Optional[GraphDef],
    net_txt: Optional[GraphDef] = None,
    *,
    allow_generic_ops: bool = True,
    remove_identity_ops: bool = True,
    dequantize_rounding: str = "none",
    enabled_rule_ids: Optional[Sequence[str]] = None,
    name: str = "tf2dnn",
) -> NetIR:
    """Lower a TensorFlow graph (plus optional text topology override) to a NetIR.

    The caller's graphs are copied first and never modified. When ``net_txt``
    is non-empty it provides the node list and ``net_bin`` only contributes
    constants.
    """
    net_bin, net_txt, preprocess_report = _prepare_graphs(
        net_bin,
        net_txt,
        remove_identity_ops,
        enabled_rule_ids,
    )

    constants = ConstantTable()
    layers_to_ignore: Set[str] = set()
    add_const_nodes(net_bin, constants, layers_to_ignore, dequantize_rounding)
    add_const_nodes(net_txt, constants, layers_to_ignore, dequantize_rounding)

    graph = net_txt if not net_txt.is_empty() else net_bin
    net = NetIR(name=name, preprocess_report=preprocess_report)
    ctx = LoweringContext(
        graph=graph,
        constants=constants,
        net=net,
        layers_to_ignore=layers_to_ignore,
        allow_generic_ops=allow_generic_ops,
    )

    info(Color.REVERSE(f'Lowering TensorFlow graph: {len(graph)} nodes, {len(constants)} constants'), '=' * 20)
    for node in graph:
        if node.name in ctx.layers_to_ignore:
            continue
        try:
            ctx.data_layouts[node.name] = predict_output_data_layout(node, ctx.data_layouts)
            resolution = dispatch_node(node, ctx)
        except ImporterError as ex:
            ex.attach_node(node.name, node.op)
            error(f'Lowering failed. {node_label(node.name, node.op)}')
            error(f'{ex.reason_code}: {ex.message}')
            raise
        layer_id = ctx.layer_ids.get(node.name, None)
        debug(
            f'{Color.GREEN("lowered")} {node_label(node.name, node.op)} '
            f'mode: {resolution.dispatch_mode} layout: {ctx.data_layouts.get(node.name, DataLayout.UNKNOWN).value}',
            layer_label(layer_id, net.get_layer(layer_id).layer_type) if layer_id else '',
        )

    info(
        Color.GREEN(f'Lowering complete: {len(net.layers)} layers, {len(net.connections)} connections'),
    )
    return net


def build_op_coverage_report(
    *,
    graph: GraphDef,
    output_file_name: str,
    conversion_error: Optional[str] = None,
    allow_generic_ops: bool = True,
    preprocess_report: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    ctx = LoweringContext(
        graph=graph,
        constants=ConstantTable(),
        net=NetIR(name=output_file_name),
        allow_generic_ops=allow_generic_ops,
    )
    node_reports: List[Dict[str, Any]] = []
    op_counts: Dict[str, int] = {}
    for node in graph:
        op_counts[node.op] = op_counts.get(node.op, 0) + 1
        if node.op in _CONSTANT_OPS:
            node_reports.append(
                {
                    "node_name": node.name,
                    "tf_op": node.op,
                    "supported": True,
                    "dispatch_mode": "constant",
                    "reason_code": "handled_as_constant",
                    "message": "Folded into the constant table before lowering.",
                }
            )
            continue
        try:
            resolution = resolve_node_dispatch(node, ctx)
            node_reports.append(
                {
                    "node_name": node.name,
                    "tf_op": node.op,
                    "supported": True,
                    "dispatch_mode": str(resolution.dispatch_mode),
                    "reason_code": resolution.reason_code,
                    "message": resolution.message,
                }
            )
        except ImporterError as ex:
            issue = ex.to_dict()
            issue["supported"] = False
            issue["dispatch_mode"] = "unsupported"
            node_reports.append(issue)

    generic_nodes = [r for r in node_reports if r["dispatch_mode"] == "generic"]
    unsupported_nodes = [r for r in node_reports if r["supported"] is False]
    reason_counts: Dict[str, int] = {}
    for issue in unsupported_nodes:
        reason = str(issue.get("reason_code", ""))
        reason_counts[reason] = reason_counts.get(reason, 0) + 1

    total_nodes = len(node_reports)
    supported_nodes = total_nodes - len(unsupported_nodes)
    return {
        "schema_version": 1,
        "output_file_name": output_file_name,
        "supported_tf_ops_registry": get_supported_tf_ops(),
        "graph_ops": sorted(op_counts.keys()),
        "graph_op_counts": dict(sorted(op_counts.items())),
        "graph_generic_ops": sorted({r["tf_op"] for r in generic_nodes}),
        "graph_unsupported_ops": sorted({r["tf_op"] for r in unsupported_nodes}),
        "graph_node_reports": node_reports,
        "generic_lowered_nodes": generic_nodes,
        "unsupported_nodes": unsupported_nodes,
        "unsupported_reason_counts": reason_counts,
        "graph_summary": {
            "total_nodes": total_nodes,
            "supported_nodes": supported_nodes,
            "generic_lowered_nodes": len(generic_nodes),
            "unsupported_nodes": len(unsupported_nodes),
            "coverage_ratio": float(supported_nodes / total_nodes) if total_nodes > 0 else 1.0,
        },
        "generic_op_policy": {
            "allow_generic_ops": bool(allow_generic_ops),
        },
        "preprocess_report": dict(preprocess_report) if isinstance(preprocess_report, dict) else None,
        "conversion_error": conversion_error,
    }


def write_op_coverage_report(
    *,
    report: Dict[str, Any],
    output_report_path: str,
) -> str:
    os.makedirs(os.path.dirname(output_report_path) or ".", exist_ok=True)
    with open(output_report_path, "w", encoding="utf-8") as f:
        json.dump(report, f, ensure_ascii=False, indent=2)
    return output_report_path
