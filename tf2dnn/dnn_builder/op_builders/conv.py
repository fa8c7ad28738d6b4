from __future__ import annotations

from typing import Any, Dict

from tf2dnn.dnn_builder.errors import UnsupportedConfiguration
from tf2dnn.dnn_builder.ir import NodeDef
from tf2dnn.dnn_builder.layout import predict_output_data_layout
from tf2dnn.dnn_builder.op_builders.shared import (
    absorb_consumer,
    fuse_bias_consumer,
    set_padding,
    set_strides,
    spatial_positions,
)
from tf2dnn.dnn_builder.surgery import get_next_layers
from tf2dnn.dnn_builder.tensor_reorder import (
    int_values,
    interleave_depthwise_kernel,
    kernel_from_tensor,
)
from tf2dnn.utils.enums import DataLayout


def _read_dilation_prologue(node: NodeDef, ctx: Any, params: Dict[str, Any]) -> NodeDef:
    # SpaceToBatchND -> Conv2D -> BatchToSpaceND is how TensorFlow spells a dilated conv.
    block_tensor, _ = ctx.get_const_blob(node, 1)
    dilation = int_values(block_tensor)
    if len(dilation) != 2 or dilation[0] != dilation[1]:
        raise UnsupportedConfiguration(
            f"SpaceToBatchND block shape must be [d, d]. block_shape={dilation}",
            node_name=node.name,
            node_op=node.op,
        )
    params["dilation"] = int(dilation[0])

    paddings_tensor, _ = ctx.get_const_blob(node, 2)
    paddings = int_values(paddings_tensor)
    if len(paddings) != 4:
        raise UnsupportedConfiguration(
            f"SpaceToBatchND paddings must be a 2x2 matrix. paddings={paddings}",
            node_name=node.name,
            node_op=node.op,
        )
    # [[top, bottom], [left, right]]
    params["pad_h"] = int(paddings[0])
    params["pad_w"] = int(paddings[2])

    convs = get_next_layers(ctx.graph, node.name, "Conv2D")
    if len(convs) != 1:
        raise UnsupportedConfiguration(
            f"SpaceToBatchND must feed exactly one Conv2D. found={len(convs)}",
            node_name=node.name,
            node_op=node.op,
        )
    conv_node = ctx.graph.node(convs[0][1])
    ctx.ignore(conv_node.name)
    ctx.data_layouts[conv_node.name] = predict_output_data_layout(conv_node, ctx.data_layouts)
    return conv_node


def build_conv2d_op(node: NodeDef, ctx: Any) -> None:
    params: Dict[str, Any] = {}
    input_ref = node.inputs[0]
    conv_node = node
    if node.op == "SpaceToBatchND":
        conv_node = _read_dilation_prologue(node, ctx, params)
    name = conv_node.name

    params["bias_term"] = False
    bias = fuse_bias_consumer(ctx, name, ["BiasAdd"])

    kernel_tensor, _ = ctx.get_const_blob(conv_node)
    kernel = kernel_from_tensor(kernel_tensor)
    if conv_node.op == "DepthwiseConv2dNative":
        kernel = interleave_depthwise_kernel(kernel)
    blobs = [kernel]
    if bias is not None:
        params["bias_term"] = True
        blobs.append(bias)

    params["kernel_h"] = int(kernel.shape[2])
    params["kernel_w"] = int(kernel.shape[3])
    params["num_output"] = int(kernel.shape[0])
    set_strides(params, conv_node)
    set_padding(params, conv_node)

    batch_to_space = get_next_layers(ctx.graph, name, "BatchToSpaceND")
    if len(batch_to_space) > 0:
        if len(batch_to_space) != 1:
            raise UnsupportedConfiguration(
                f"Dilated convolution must end with exactly one BatchToSpaceND. found={len(batch_to_space)}",
                node_name=name,
                node_op=conv_node.op,
            )
        # explicit pad_h/pad_w from SpaceToBatchND
        params["pad_mode"] = ""
        absorb_consumer(ctx, name, batch_to_space[0][1])

    layer_id = ctx.add_layer(name, "Convolution", params, blobs)
    ctx.connect(input_ref, layer_id, 0)

    if ctx.data_layouts.get(name, DataLayout.UNKNOWN) == DataLayout.UNKNOWN:
        ctx.data_layouts[name] = DataLayout.NHWC


def build_conv2d_backprop_input_op(node: NodeDef, ctx: Any) -> None:
    # inputs: output_shape, filter, input
    params: Dict[str, Any] = {"bias_term": False}
    bias = fuse_bias_consumer(ctx, node.name, ["BiasAdd"])

    kernel_tensor, _ = ctx.get_const_blob(node, 1)
    kernel = kernel_from_tensor(kernel_tensor)
    blobs = [kernel]
    if bias is not None:
        params["bias_term"] = True
        blobs.append(bias)

    kernel_h = int(kernel.shape[2])
    kernel_w = int(kernel.shape[3])
    params["kernel_h"] = kernel_h
    params["kernel_w"] = kernel_w
    params["num_output"] = int(kernel.shape[1])
    set_strides(params, node)
    set_padding(params, node)

    out_shape_tensor, _ = ctx.get_const_blob(node, 0)
    out_shape = int_values(out_shape_tensor)
    if len(out_shape) != 4:
        raise UnsupportedConfiguration(
            f"Conv2DBackpropInput output_shape must have 4 elements. output_shape={out_shape}",
            node_name=node.name,
            node_op=node.op,
        )
    h_pos, w_pos = spatial_positions(node)
    out_h = int(out_shape[h_pos])
    out_w = int(out_shape[w_pos])
    stride_h = int(params.get("stride_h", 1))
    stride_w = int(params.get("stride_w", 1))
    # SAME: o = 1 + (i - 1) * s, VALID: o = (i - 1) * s + k; the remainder is the adjustment.
    pad_mode = params.get("pad_mode", "")
    if pad_mode == "SAME":
        params["adj_w"] = (out_w - 1) % stride_w
        params["adj_h"] = (out_h - 1) % stride_h
    elif pad_mode == "VALID":
        params["adj_w"] = (out_w - kernel_w) % stride_w
        params["adj_h"] = (out_h - kernel_h) % stride_h

    layer_id = ctx.add_layer(node.name, "Deconvolution", params, blobs)
    ctx.connect(node.inputs[2], layer_id, 0)
