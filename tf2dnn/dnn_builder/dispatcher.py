from __future__ import annotations

from typing import Any

from tf2dnn.dnn_builder.ir import NodeDef
from tf2dnn.dnn_builder.op_registry import DispatchResolution, resolve_node_dispatch


def dispatch_node(node: NodeDef, ctx: Any) -> DispatchResolution:
    resolution = resolve_node_dispatch(node, ctx)
    resolution.entry.builder(node, ctx)
    return resolution
