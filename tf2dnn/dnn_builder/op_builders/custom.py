from __future__ import annotations

from typing import Any, Dict, List

import numpy as np

from tf2dnn.dnn_builder.ir import AttrKind, NodeDef
from tf2dnn.utils.logging import node_label, warn

_COPIED_ATTR_KINDS = [AttrKind.STRING, AttrKind.INT, AttrKind.FLOAT, AttrKind.BOOL]


def build_generic_op(node: NodeDef, ctx: Any) -> None:
    """Layer of the same type as the TF op, for a custom layer registered downstream."""
    params: Dict[str, Any] = {
        key: value.value
        for key, value in node.attr.items()
        if value.kind in _COPIED_ATTR_KINDS
    }
    blobs: List[np.ndarray] = []
    data_refs: List[str] = []
    for input_idx, ref in enumerate(node.inputs):
        if ctx.is_const(ref):
            tensor, _ = ctx.get_const_blob(node, input_idx)
            blobs.append(np.array(tensor.values(), copy=True))
        else:
            data_refs.append(ref)

    warn(
        f'No lowering rule for this op, emitting a generic "{node.op}" layer. '
        f'A custom layer must be registered for it downstream. {node_label(node.name, node.op)}'
    )
    layer_id = ctx.add_layer(node.name, node.op, params, blobs)
    for dst_slot, ref in enumerate(data_refs):
        ctx.connect(ref, layer_id, dst_slot)
    ctx.generic_ops.append(node.op)
