from __future__ import annotations

from typing import Any, Dict

from tf2dnn.dnn_builder.errors import UnsupportedConfiguration
from tf2dnn.dnn_builder.ir import NodeDef, has_attr
from tf2dnn.dnn_builder.op_builders.shared import set_ksize, set_padding, set_strides
from tf2dnn.dnn_builder.tensor_reorder import int_values


def build_pool2d_op(node: NodeDef, ctx: Any) -> None:
    params: Dict[str, Any] = {}
    if node.op == "MaxPool":
        params["pool"] = "max"
    else:
        params["pool"] = "ave"
        params["ave_pool_padded_area"] = False
    set_ksize(params, node)
    set_strides(params, node)
    set_padding(params, node)
    layer_id = ctx.add_layer(node.name, "Pooling", params)
    ctx.connect_to_all_blobs(node.inputs[0], layer_id, len(node.inputs))


def _keep_dims(node: NodeDef) -> bool:
    # "keep_dims" is the deprecated spelling
    if has_attr(node, "keepdims"):
        return bool(node.attr["keepdims"].b)
    if has_attr(node, "keep_dims"):
        return bool(node.attr["keep_dims"].b)
    return False


def build_mean_op(node: NodeDef, ctx: Any) -> None:
    indices_tensor, _ = ctx.get_const_blob(node, 1)
    indices = int_values(indices_tensor)
    if indices != [1, 2]:
        raise UnsupportedConfiguration(
            f"Unsupported mode of reduce_mean operation. reduction_indices={indices}",
            node_name=node.name,
            node_op=node.op,
        )
    layer_id = ctx.add_layer(
        node.name,
        "Pooling",
        {"pool": "ave", "global_pooling": True},
    )
    ctx.connect(node.inputs[0], layer_id, 0)

    if not _keep_dims(node):
        flatten_name = f"{node.name}/flatten"
        flatten_id = ctx.add_layer(flatten_name, "Flatten")
        ctx.connect(node.name, flatten_id, 0)
        # Readers of the reduce_mean output get the flattened tensor.
        ctx.alias_layer(node.name, flatten_id)
