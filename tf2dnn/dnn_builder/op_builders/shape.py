from __future__ import annotations

from typing import Any, Dict, List

from tf2dnn.dnn_builder.errors import UnsupportedConfiguration
from tf2dnn.dnn_builder.ir import NodeDef, get_attr, has_attr
from tf2dnn.dnn_builder.layout import to_nchw
from tf2dnn.dnn_builder.op_builders.shared import (
    add_nhwc_permute,
    connect_all_inputs,
    swap_nhwc_to_nchw,
)
from tf2dnn.dnn_builder.tensor_reorder import int_values
from tf2dnn.utils.enums import DataLayout

_SQUEEZE_DIMS_BY_LAYOUT = {
    DataLayout.NHWC: [1, 2],
    DataLayout.NCHW: [2, 3],
}


def _const_ints(node: NodeDef, ctx: Any, input_index: int) -> List[int]:
    tensor, _ = ctx.get_const_blob(node, input_index)
    return int_values(tensor)


def build_placeholder_op(node: NodeDef, ctx: Any) -> None:
    ctx.register_input(node.name)


def build_reshape_op(node: NodeDef, ctx: Any) -> None:
    input_ref: Any = node.inputs[0]
    new_shape = _const_ints(node, ctx, 1)
    if ctx.layout_of(input_ref) == DataLayout.NHWC:
        if len(new_shape) != 4:
            input_ref = add_nhwc_permute(ctx, node, input_ref)
        else:
            new_shape = swap_nhwc_to_nchw(new_shape)
    layer_id = ctx.add_layer(node.name, "Reshape", {"dim": new_shape})
    ctx.connect(input_ref, layer_id, 0)


def build_flatten_op(node: NodeDef, ctx: Any) -> None:
    input_ref: Any = node.inputs[0]
    input_layout = ctx.layout_of(input_ref)
    if node.op == "Squeeze":
        squeeze_dims = [int(v) for v in get_attr(node, "squeeze_dims").ints]
        expected = _SQUEEZE_DIMS_BY_LAYOUT.get(input_layout, None)
        if expected is None or squeeze_dims != expected:
            raise UnsupportedConfiguration(
                f"Unsupported squeeze configuration. squeeze_dims={squeeze_dims} layout={input_layout.value}",
                node_name=node.name,
                node_op=node.op,
            )
    if input_layout == DataLayout.NHWC:
        input_ref = add_nhwc_permute(ctx, node, input_ref)
    layer_id = ctx.add_layer(node.name, "Flatten")
    ctx.connect(input_ref, layer_id, 0)
    ctx.data_layouts[node.name] = DataLayout.UNKNOWN


def build_transpose_op(node: NodeDef, ctx: Any) -> None:
    perm = _const_ints(node, ctx, 1)
    if len(perm) != 4:
        layer_id = ctx.add_layer(node.name, "Permute", {"order": perm})
        ctx.connect(node.inputs[0], layer_id, 0)
        ctx.data_layouts[node.name] = DataLayout.UNKNOWN
        return

    # 4-D transposes only switch the layout tag; the data stays NCHW.
    input_layout = ctx.layout_of(node.inputs[0])
    if input_layout == DataLayout.NHWC:
        if perm == [0, 3, 1, 2]:
            ctx.data_layouts[node.name] = DataLayout.NCHW
        elif perm == [0, 1, 2, 3]:
            ctx.data_layouts[node.name] = DataLayout.NHWC
        else:
            raise UnsupportedConfiguration(
                f"Only NHWC <-> NCHW permutations are allowed. perm={perm}",
                node_name=node.name,
                node_op=node.op,
            )
    elif input_layout == DataLayout.NCHW:
        if perm == [0, 2, 3, 1]:
            ctx.data_layouts[node.name] = DataLayout.NHWC
        elif perm == [0, 1, 2, 3]:
            ctx.data_layouts[node.name] = DataLayout.NCHW
        else:
            raise UnsupportedConfiguration(
                f"Only NHWC <-> NCHW permutations are allowed. perm={perm}",
                node_name=node.name,
                node_op=node.op,
            )
    layer_id = ctx.add_layer(node.name, "Identity")
    ctx.connect(node.inputs[0], layer_id, 0)


def build_concat_op(node: NodeDef, ctx: Any) -> None:
    # Concat: (axis, values...); ConcatV2: (values..., axis)
    if node.op == "Concat":
        axis_idx = 0
        refs = list(node.inputs[1:])
    else:
        axis_idx = len(node.inputs) - 1
        refs = list(node.inputs[:-1])
    axis = _const_ints(node, ctx, axis_idx)[0]
    params: Dict[str, Any] = {"axis": to_nchw(axis)}
    layer_id = ctx.add_layer(node.name, "Concat", params)
    connect_all_inputs(ctx, node, layer_id, refs)


def build_split_op(node: NodeDef, ctx: Any) -> None:
    # inputs: axis, value
    axis = _const_ints(node, ctx, 0)[0]
    params: Dict[str, Any] = {"axis": to_nchw(axis)}
    if has_attr(node, "num_split"):
        params["num_split"] = int(node.attr["num_split"].i)
    layer_id = ctx.add_layer(node.name, "Slice", params)
    ctx.connect(node.inputs[1], layer_id, 0)


def build_slice_op(node: NodeDef, ctx: Any) -> None:
    begins = _const_ints(node, ctx, 1)
    sizes = _const_ints(node, ctx, 2)
    if len(begins) == 0 or len(sizes) == 0:
        raise UnsupportedConfiguration(
            "Slice begin and size must not be empty.",
            node_name=node.name,
            node_op=node.op,
        )
    if len(begins) == 4:
        begins = swap_nhwc_to_nchw(begins)
        sizes = swap_nhwc_to_nchw(sizes)
    layer_id = ctx.add_layer(node.name, "Slice", {"begin": begins, "size": sizes})
    ctx.connect(node.inputs[0], layer_id, 0)


def build_pad_op(node: NodeDef, ctx: Any) -> None:
    paddings = _const_ints(node, ctx, 1)
    if len(paddings) == 8:
        # (N, H, W, C) before/after pairs -> (N, C, H, W)
        paddings = paddings[0:2] + paddings[6:8] + paddings[2:4] + paddings[4:6]
    layer_id = ctx.add_layer(node.name, "Padding", {"paddings": paddings})
    ctx.connect(node.inputs[0], layer_id, 0)


def build_resize_nearest_op(node: NodeDef, ctx: Any) -> None:
    out_size = _const_ints(node, ctx, 1)
    if len(out_size) != 2:
        raise UnsupportedConfiguration(
            f"ResizeNearestNeighbor size must have 2 elements. size={out_size}",
            node_name=node.name,
            node_op=node.op,
        )
    params: Dict[str, Any] = {
        "height": int(out_size[0]),
        "width": int(out_size[1]),
    }
    if has_attr(node, "align_corners"):
        params["align_corners"] = bool(node.attr["align_corners"].b)
    layer_id = ctx.add_layer(node.name, "ResizeNearestNeighbor", params)
    ctx.connect(node.inputs[0], layer_id, 0)
