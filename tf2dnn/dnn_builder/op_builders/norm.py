from __future__ import annotations

from typing import Any, Dict, List

import numpy as np

from tf2dnn.dnn_builder.errors import UnsupportedConfiguration
from tf2dnn.dnn_builder.ir import NodeDef, has_attr
from tf2dnn.dnn_builder.layout import to_nchw
from tf2dnn.dnn_builder.tensor_reorder import blob_from_tensor, int_values
from tf2dnn.utils.enums import DataLayout


def build_lrn_op(node: NodeDef, ctx: Any) -> None:
    params: Dict[str, Any] = {}
    if has_attr(node, "alpha"):
        params["alpha"] = float(node.attr["alpha"].f)
    if has_attr(node, "beta"):
        params["beta"] = float(node.attr["beta"].f)
    if has_attr(node, "depth_radius"):
        params["local_size"] = 2 * int(node.attr["depth_radius"].i) + 1
    if has_attr(node, "bias"):
        params["bias"] = float(node.attr["bias"].f)
    params["norm_by_size"] = False
    layer_id = ctx.add_layer(node.name, "LRN", params)
    ctx.connect_to_all_blobs(node.inputs[0], layer_id, len(node.inputs))


def build_fused_batch_norm_op(node: NodeDef, ctx: Any) -> None:
    """FusedBatchNorm(x, gamma, beta, moving_mean, moving_variance).

    Blobs are ``[mean, variance]`` followed by gamma and beta when they are
    non-empty. In training mode the statistics come from the batch, so an
    MVN layer normalizes first and the BatchNorm only applies gamma/beta.
    """
    params: Dict[str, Any] = {}
    input_ref: Any = node.inputs[0]
    is_training = has_attr(node, "is_training") and bool(node.attr["is_training"].b)

    affine: List[np.ndarray] = []
    gamma_tensor, _ = ctx.get_const_blob(node, 1)
    params["has_weight"] = not gamma_tensor.is_empty()
    if params["has_weight"]:
        affine.append(blob_from_tensor(gamma_tensor))
    beta_tensor, _ = ctx.get_const_blob(node, 2)
    params["has_bias"] = not beta_tensor.is_empty()
    if params["has_bias"]:
        affine.append(blob_from_tensor(beta_tensor))

    if is_training:
        if len(affine) == 0:
            raise UnsupportedConfiguration(
                "Cannot determine number of parameters for batch normalization layer.",
                node_name=node.name,
                node_op=node.op,
            )
        channels = int(affine[-1].size)
        mean = np.zeros([channels], dtype=np.float32)
        variance = np.ones([channels], dtype=np.float32)

        mvn_name = f"{node.name}/MVN"
        mvn_id = ctx.add_layer(mvn_name, "MVN")
        ctx.connect(input_ref, mvn_id, 0)
        input_ref = mvn_name
    else:
        mean_tensor, _ = ctx.get_const_blob(node, 3)
        variance_tensor, _ = ctx.get_const_blob(node, 4)
        mean = blob_from_tensor(mean_tensor)
        variance = blob_from_tensor(variance_tensor)

    if has_attr(node, "epsilon"):
        params["eps"] = float(node.attr["epsilon"].f)

    layer_id = ctx.add_layer(node.name, "BatchNorm", params, [mean, variance] + affine)
    ctx.connect(input_ref, layer_id, 0)


def build_l2_normalize_op(node: NodeDef, ctx: Any) -> None:
    indices_tensor, _ = ctx.get_const_blob(node, 1)
    axes = int_values(indices_tensor)
    if len(axes) == 0:
        raise UnsupportedConfiguration(
            "L2Normalize needs at least one reduction axis.",
            node_name=node.name,
            node_op=node.op,
        )
    if ctx.data_layouts.get(node.name, DataLayout.UNKNOWN) == DataLayout.NHWC:
        axes = [to_nchw(axis) for axis in axes]
    axes = sorted(axes)
    for prev, cur in zip(axes[:-1], axes[1:]):
        if cur != prev + 1 or cur * prev < 0:
            raise UnsupportedConfiguration(
                f"L2Normalize axes must be contiguous and share a sign. axes={axes}",
                node_name=node.name,
                node_op=node.op,
            )
    params = {
        "start_axis": int(axes[0]),
        "end_axis": int(axes[-1]),
    }
    layer_id = ctx.add_layer(node.name, "Normalize", params)
    ctx.connect(node.inputs[0], layer_id, 0)
