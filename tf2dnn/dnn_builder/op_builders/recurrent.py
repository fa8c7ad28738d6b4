from __future__ import annotations

from typing import Any, Dict

from tf2dnn.dnn_builder.errors import UnsupportedConfiguration
from tf2dnn.dnn_builder.ir import NodeDef, has_attr
from tf2dnn.dnn_builder.tensor_reorder import (
    blob_from_tensor,
    peephole_matrix,
    reorder_lstm_gates,
    split_lstm_weights,
)
from tf2dnn.utils.enums import DataLayout

# BlockLSTM inputs
_SEQ_INPUT = 1
_KERNEL_INPUT = 4
_PEEPHOLE_INPUTS = [5, 6, 7]
_BIAS_INPUT = 8


def build_block_lstm_op(node: NodeDef, ctx: Any) -> None:
    params: Dict[str, Any] = {}
    if has_attr(node, "forget_bias"):
        params["forget_bias"] = float(node.attr["forget_bias"].f)
    if has_attr(node, "cell_clip"):
        cell_clip = float(node.attr["cell_clip"].f)
        # negative disables clipping
        if cell_clip >= 0:
            params["use_cell_clip"] = True
            params["cell_clip"] = cell_clip

    kernel_tensor, _ = ctx.get_const_blob(node, _KERNEL_INPUT)
    bias_tensor, _ = ctx.get_const_blob(node, _BIAS_INPUT)
    weights = blob_from_tensor(kernel_tensor)
    if weights.ndim != 2:
        raise UnsupportedConfiguration(
            f"BlockLSTM kernel must be 2D. shape={list(weights.shape)}",
            node_name=node.name,
            node_op=node.op,
        )
    weights = reorder_lstm_gates(weights)
    wh, wx = split_lstm_weights(weights)
    blobs = [wh, wx, reorder_lstm_gates(blob_from_tensor(bias_tensor))]

    if has_attr(node, "use_peephole") and bool(node.attr["use_peephole"].b):
        params["use_peephole"] = True
        for input_index in _PEEPHOLE_INPUTS:
            peephole_tensor, _ = ctx.get_const_blob(node, input_index)
            blobs.append(peephole_matrix(blob_from_tensor(peephole_tensor)))

    layer_id = ctx.add_layer(node.name, "LSTM", params, blobs)
    ctx.connect(node.inputs[_SEQ_INPUT], layer_id, 0)
    ctx.data_layouts[node.name] = DataLayout.UNKNOWN
