from __future__ import annotations

from typing import Any, Dict, List

import numpy as np

from tf2dnn.dnn_builder.errors import UnsupportedConfiguration, UnsupportedTensorType
from tf2dnn.dnn_builder.ir import NodeDef, has_attr
from tf2dnn.dnn_builder.op_builders.shared import (
    absorb_consumer,
    connect_all_inputs,
    fuse_bias_consumer,
)
from tf2dnn.dnn_builder.surgery import get_next_layers
from tf2dnn.dnn_builder.tensor_reorder import blob_from_tensor, tensor_values
from tf2dnn.utils.enums import ACTIVATION_LAYER_TYPES, BLOB_FLOAT_DTYPES


def _require_binary_with_const(node: NodeDef) -> None:
    if len(node.inputs) != 2:
        raise UnsupportedConfiguration(
            f"{node.op} with a constant operand must have exactly 2 inputs. input_count={len(node.inputs)}",
            node_name=node.name,
            node_op=node.op,
        )


def build_bias_add_op(node: NodeDef, ctx: Any) -> None:
    if ctx.has_const_input(node):
        _require_binary_with_const(node)
        tensor, const_idx = ctx.get_const_blob(node)
        layer_id = ctx.add_layer(node.name, "Shift", {}, [blob_from_tensor(tensor)])
        ctx.connect(node.inputs[1 - const_idx], layer_id, 0)
        return
    layer_id = ctx.add_layer(node.name, "Eltwise", {"operation": "sum"})
    connect_all_inputs(ctx, node, layer_id)


def build_mul_op(node: NodeDef, ctx: Any) -> None:
    if not ctx.has_const_input(node):
        layer_id = ctx.add_layer(node.name, "Eltwise", {"operation": "prod"})
        connect_all_inputs(ctx, node, layer_id)
        return

    _require_binary_with_const(node)
    tensor, const_idx = ctx.get_const_blob(node)
    if tensor.dtype not in BLOB_FLOAT_DTYPES:
        raise UnsupportedTensorType(
            f"Mul by a constant needs a float constant. dtype={tensor.dtype}",
            node_name=node.name,
            node_op=node.op,
        )
    scale = tensor_values(tensor).astype(np.float32)
    params: Dict[str, Any] = {}
    blobs: List[np.ndarray] = []
    if scale.size == 1:
        # LeakyRelu is emitted as Maximum(Mul(alpha, x), x).
        maximums = get_next_layers(ctx.graph, node.name, "Maximum")
        if len(maximums) > 0:
            absorb_consumer(ctx, node.name, maximums[0][1])
            params["negative_slope"] = float(scale[0])
            layer_type = "ReLU"
        else:
            params["scale"] = float(scale[0])
            layer_type = "Power"
    else:
        blobs.append(scale)
        bias = fuse_bias_consumer(
            ctx,
            node.name,
            ["Add"],
            single_consumer=False,
            require_const=True,
        )
        if bias is not None:
            params["bias_term"] = True
            blobs.append(bias)
        layer_type = "Scale"

    layer_id = ctx.add_layer(node.name, layer_type, params, blobs)
    ctx.connect(node.inputs[1 - const_idx], layer_id, 0)


def build_activation_op(node: NodeDef, ctx: Any) -> None:
    layer_id = ctx.add_layer(node.name, ACTIVATION_LAYER_TYPES[node.op])
    ctx.connect_to_all_blobs(node.inputs[0], layer_id, len(node.inputs))


def build_softmax_op(node: NodeDef, ctx: Any) -> None:
    params: Dict[str, Any] = {}
    if has_attr(node, "axis"):
        params["axis"] = int(node.attr["axis"].i)
    layer_id = ctx.add_layer(node.name, "Softmax", params)
    ctx.connect_to_all_blobs(node.inputs[0], layer_id, len(node.inputs))
