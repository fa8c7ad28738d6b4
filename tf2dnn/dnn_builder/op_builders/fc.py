from __future__ import annotations

from typing import Any, Dict

from tf2dnn.dnn_builder.ir import NodeDef
from tf2dnn.dnn_builder.op_builders.shared import fuse_bias_consumer
from tf2dnn.dnn_builder.tensor_reorder import blob_from_tensor, matmul_weights
from tf2dnn.utils.enums import DataLayout


def build_matmul_op(node: NodeDef, ctx: Any) -> None:
    params: Dict[str, Any] = {"bias_term": False}
    bias = fuse_bias_consumer(
        ctx,
        node.name,
        ["BiasAdd", "Add"],
        require_const=True,
    )

    kernel_tensor, kernel_idx = ctx.get_const_blob(node)
    weights = matmul_weights(blob_from_tensor(kernel_tensor), kernel_idx)
    blobs = [weights]
    if bias is not None:
        params["bias_term"] = True
        blobs.append(bias)
    params["num_output"] = int(weights.shape[0])

    layer_id = ctx.add_layer(node.name, "InnerProduct", params, blobs)
    ctx.connect(node.inputs[1 - kernel_idx], layer_id, 0)
    ctx.data_layouts[node.name] = DataLayout.UNKNOWN
