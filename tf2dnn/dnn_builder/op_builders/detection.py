from __future__ import annotations

from typing import Any, Dict

import numpy as np

from tf2dnn.dnn_builder.ir import NodeDef, has_attr
from tf2dnn.dnn_builder.tensor_reorder import tensor_values
from tf2dnn.utils.enums import DataLayout

_PRIOR_BOX_SCALARS = {
    "min_size": "i",
    "max_size": "i",
    "flip": "b",
    "clip": "b",
    "offset": "f",
    "step": "f",
}
_PRIOR_BOX_LISTS = ["variance", "aspect_ratio", "scales", "width", "height"]

_DETECTION_OUTPUT_SCALARS = {
    "num_classes": "i",
    "share_location": "b",
    "background_label_id": "i",
    "nms_threshold": "f",
    "top_k": "i",
    "code_type": "s",
    "keep_top_k": "i",
    "confidence_threshold": "f",
    "loc_pred_transposed": "b",
}


def _copy_scalar_attrs(node: NodeDef, params: Dict[str, Any], kinds: Dict[str, str]) -> None:
    for attr_name, kind in kinds.items():
        if has_attr(node, attr_name):
            params[attr_name] = getattr(node.attr[attr_name], kind)


def build_prior_box_op(node: NodeDef, ctx: Any) -> None:
    params: Dict[str, Any] = {}
    _copy_scalar_attrs(node, params, _PRIOR_BOX_SCALARS)
    for attr_name in _PRIOR_BOX_LISTS:
        if has_attr(node, attr_name):
            values = tensor_values(node.attr[attr_name].tensor).astype(np.float32)
            params[attr_name] = [float(v) for v in values.tolist()]
    layer_id = ctx.add_layer(node.name, "PriorBox", params)
    ctx.connect(node.inputs[0], layer_id, 0)
    ctx.connect(node.inputs[1], layer_id, 1)
    ctx.data_layouts[node.name] = DataLayout.UNKNOWN


def build_detection_output_op(node: NodeDef, ctx: Any) -> None:
    # inputs: locations, classifications, prior boxes
    params: Dict[str, Any] = {}
    _copy_scalar_attrs(node, params, _DETECTION_OUTPUT_SCALARS)
    layer_id = ctx.add_layer(node.name, "DetectionOutput", params)
    for dst_slot in range(3):
        ctx.connect(node.inputs[dst_slot], layer_id, dst_slot)
    ctx.data_layouts[node.name] = DataLayout.UNKNOWN
