from __future__ import annotations

from typing import Any, Dict, List, Optional

import numpy as np

from tf2dnn.dnn_builder.errors import UnsupportedConfiguration
from tf2dnn.dnn_builder.ir import NodeDef, Pin, has_attr, parse_pin
from tf2dnn.dnn_builder.layout import layout_from_data_format
from tf2dnn.dnn_builder.surgery import exclude_layer, get_next_layers
from tf2dnn.dnn_builder.tensor_reorder import blob_from_tensor
from tf2dnn.utils.enums import DataLayout

# NCHW (engine) -> NHWC (TensorFlow) before layers that flatten their input.
NCHW_TO_NHWC_ORDER = [0, 2, 3, 1]


def spatial_positions(node: NodeDef) -> List[int]:
    if layout_from_data_format(node) == DataLayout.NCHW:
        return [2, 3]
    return [1, 2]


def _read_spatial_pair(node: NodeDef, attr_name: str) -> Optional[List[int]]:
    if not has_attr(node, attr_name):
        return None
    values = [int(v) for v in node.attr[attr_name].ints]
    positions = spatial_positions(node)
    unit_positions = [idx for idx in range(4) if idx not in positions]
    if len(values) != 4 or any(values[idx] != 1 for idx in unit_positions):
        raise UnsupportedConfiguration(
            f"Unsupported {attr_name}: {values}",
            node_name=node.name,
            node_op=node.op,
        )
    return [values[positions[0]], values[positions[1]]]


def set_strides(params: Dict[str, Any], node: NodeDef) -> None:
    strides = _read_spatial_pair(node, "strides")
    if strides is None:
        return
    params["stride_h"] = strides[0]
    params["stride_w"] = strides[1]


def set_ksize(params: Dict[str, Any], node: NodeDef) -> None:
    ksize = _read_spatial_pair(node, "ksize")
    if ksize is None:
        ksize = [1, 1]
    params["kernel_h"] = ksize[0]
    params["kernel_w"] = ksize[1]


def set_padding(params: Dict[str, Any], node: NodeDef) -> None:
    if has_attr(node, "padding"):
        params["pad_mode"] = node.attr["padding"].s


def reading_slot(consumer: NodeDef, producer_name: str) -> int:
    for idx, ref in enumerate(consumer.inputs):
        if parse_pin(ref).name == producer_name:
            return idx
    return 0


def absorb_consumer(ctx: Any, producer_name: str, consumer_idx: int) -> NodeDef:
    """Unlink a fused consumer: its readers now read ``producer_name``."""
    consumer = ctx.graph.node(consumer_idx)
    exclude_layer(
        ctx.graph,
        consumer_idx,
        reading_slot(consumer, producer_name),
        remove_from_net=False,
    )
    ctx.ignore(consumer.name)
    return consumer


def fuse_bias_consumer(
    ctx: Any,
    producer_name: str,
    consumer_ops: List[str],
    *,
    single_consumer: bool = True,
    require_const: bool = False,
) -> Optional[np.ndarray]:
    """Take the constant operand of a bias-like consumer as a blob.

    ``consumer_ops`` are tried in order; the first op with any consumers decides.
    """
    consumers = []
    for consumer_op in consumer_ops:
        consumers = get_next_layers(ctx.graph, producer_name, consumer_op)
        if len(consumers) > 0:
            break
    if len(consumers) == 0:
        return None
    if single_consumer and len(consumers) != 1:
        return None
    consumer_idx = consumers[0][1]
    consumer = ctx.graph.node(consumer_idx)
    if require_const and not ctx.has_const_input(consumer):
        return None
    tensor, _ = ctx.get_const_blob(consumer)
    bias = blob_from_tensor(tensor)
    absorb_consumer(ctx, producer_name, consumer_idx)
    return bias


def add_nhwc_permute(ctx: Any, node: NodeDef, input_ref: str) -> Pin:
    """``<name>/nchw`` Permute layer restoring TensorFlow's NHWC element order."""
    perm_name = f"{node.name}/nchw"
    perm_id = ctx.add_layer(perm_name, "Permute", {"order": list(NCHW_TO_NHWC_ORDER)})
    ctx.connect(input_ref, perm_id, 0)
    return Pin(name=perm_name)


def swap_nhwc_to_nchw(values: List[int]) -> List[int]:
    """Reorder a 4-element NHWC vector to NCHW."""
    values = list(values)
    values[2], values[3] = values[3], values[2]
    values[1], values[2] = values[2], values[1]
    return values


def connect_all_inputs(ctx: Any, node: NodeDef, layer_id: int, refs: Optional[List[str]] = None) -> None:
    for dst_slot, ref in enumerate(node.inputs if refs is None else refs):
        ctx.connect(ref, layer_id, dst_slot)
