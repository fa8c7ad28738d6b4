from __future__ import annotations

from typing import Optional, Union

import numpy as np
import tensorflow as tf
from google.protobuf import text_format
from tensorflow.core.framework import graph_pb2, types_pb2

from tf2dnn.dnn_builder.ir import (
    AttrKind,
    AttrValue,
    GraphDef,
    NodeDef,
    TensorValue,
)
from tf2dnn.utils.logging import debug

_QUANTIZED_VIEW_DTYPES = {
    'DT_QUINT8': np.uint8,
    'DT_QINT8': np.int8,
    'DT_QINT32': np.int32,
}


def _tensor_from_proto(proto) -> TensorValue:
    dtype = types_pb2.DataType.Name(proto.dtype)
    arr = tf.make_ndarray(proto)
    if dtype in _QUANTIZED_VIEW_DTYPES:
        # quantized numpy types are single-field structured dtypes
        arr = arr.view(_QUANTIZED_VIEW_DTYPES[dtype])
    return TensorValue(
        dtype=dtype,
        shape=[int(d.size) for d in proto.tensor_shape.dim],
        data=np.asarray(arr).reshape(-1),
    )


def _attr_from_proto(proto) -> Optional[AttrValue]:
    kind = proto.WhichOneof('value')
    if kind == 'b':
        return AttrValue(AttrKind.BOOL, bool(proto.b))
    if kind == 'i':
        return AttrValue(AttrKind.INT, int(proto.i))
    if kind == 'f':
        return AttrValue(AttrKind.FLOAT, float(proto.f))
    if kind == 's':
        return AttrValue(AttrKind.STRING, proto.s.decode('utf-8', errors='replace'))
    if kind == 'type':
        return AttrValue(AttrKind.STRING, types_pb2.DataType.Name(proto.type))
    if kind == 'tensor':
        return AttrValue(AttrKind.TENSOR, _tensor_from_proto(proto.tensor))
    if kind == 'shape':
        return AttrValue(AttrKind.SHAPE, [int(d.size) for d in proto.shape.dim])
    if kind == 'list':
        if len(proto.list.f) > 0:
            return AttrValue(AttrKind.FLOAT_LIST, [float(v) for v in proto.list.f])
        if len(proto.list.i) > 0 or not proto.list.ListFields():
            return AttrValue(AttrKind.INT_LIST, [int(v) for v in proto.list.i])
    return None


def _node_from_proto(proto) -> NodeDef:
    attr = {}
    for key, value in proto.attr.items():
        converted = _attr_from_proto(value)
        if converted is None:
            debug(f'Skipping attribute of unsupported kind. node: {proto.name} attr: {key}')
            continue
        attr[key] = converted
    return NodeDef(
        name=proto.name,
        op=proto.op,
        inputs=[ref for ref in proto.input if not ref.startswith('^')],
        attr=attr,
    )


def graph_from_proto(graph_proto: graph_pb2.GraphDef) -> GraphDef:
    return GraphDef([_node_from_proto(node) for node in graph_proto.node])


def parse_graph_def(data: bytes) -> GraphDef:
    graph_proto = graph_pb2.GraphDef()
    graph_proto.ParseFromString(data)
    return graph_from_proto(graph_proto)


def parse_graph_def_text(text: Union[str, bytes]) -> GraphDef:
    if isinstance(text, bytes):
        text = text.decode('utf-8')
    graph_proto = graph_pb2.GraphDef()
    text_format.Merge(text, graph_proto)
    return graph_from_proto(graph_proto)


def load_graph_def(model_path: str) -> GraphDef:
    with open(model_path, 'rb') as f:
        return parse_graph_def(f.read())


def load_graph_def_text(config_path: str) -> GraphDef:
    with open(config_path, 'r', encoding='utf-8') as f:
        return parse_graph_def_text(f.read())
