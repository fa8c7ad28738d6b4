from __future__ import annotations

from typing import Dict, Optional

from tf2dnn.dnn_builder.errors import UnknownLayout, UnsupportedConfiguration
from tf2dnn.dnn_builder.ir import NodeDef, has_attr, parse_pin
from tf2dnn.utils.enums import DATA_FORMAT_TO_LAYOUT, DataLayout


def layout_from_data_format(node: NodeDef) -> Optional[DataLayout]:
    if not has_attr(node, "data_format"):
        return None
    data_format = node.attr["data_format"].s
    if data_format not in DATA_FORMAT_TO_LAYOUT:
        raise UnknownLayout(
            f"Unknown data_format value: {data_format}",
            node_name=node.name,
            node_op=node.op,
        )
    return DATA_FORMAT_TO_LAYOUT[data_format]


def predict_output_data_layout(
    node: NodeDef,
    data_layouts: Dict[str, DataLayout],
) -> DataLayout:
    """Layout of a node's output.

    An explicit ``data_format`` wins. Otherwise the output keeps the layout
    its inputs agree on; unknown or disagreeing inputs give UNKNOWN.
    """
    explicit = layout_from_data_format(node)
    if explicit is not None:
        return explicit

    layout = DataLayout.UNKNOWN
    for ref in node.inputs:
        producer_layout = data_layouts.get(parse_pin(ref).name, None)
        if producer_layout is None:
            continue
        if producer_layout == DataLayout.UNKNOWN:
            return DataLayout.UNKNOWN
        if layout == DataLayout.UNKNOWN:
            layout = producer_layout
        elif producer_layout != layout:
            return DataLayout.UNKNOWN
    return layout


def to_nchw(axis: int) -> int:
    """Map an NHWC axis index (negative allowed) to its NCHW position."""
    axis = int(axis)
    if axis < -4 or axis >= 4:
        raise UnsupportedConfiguration(f"Axis is out of range for a 4D tensor: {axis}")
    if axis == 0:
        return 0
    if axis > 0:
        return axis % 3 + 1
    return (4 + axis) % 3 + 1
