from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence

import numpy as np

from tf2dnn.dnn_builder.errors import (
    DuplicateLayerName,
    MalformedReference,
    MissingAttribute,
    ShapeMismatch,
    UnknownInput,
)
from tf2dnn.utils.enums import NUMPY_DTYPES_TO_TF_DTYPES, TF_DTYPES_TO_NUMPY_DTYPES


class AttrKind(Enum):
    BOOL = "b"
    INT = "i"
    FLOAT = "f"
    STRING = "s"
    INT_LIST = "list.i"
    FLOAT_LIST = "list.f"
    TENSOR = "tensor"
    SHAPE = "shape"


@dataclass
class TensorValue:
    """Embedded constant: TF element type name, logical shape and a flat payload."""
    dtype: str
    shape: List[int]
    data: np.ndarray

    @property
    def rank(self) -> int:
        return len(self.shape)

    @property
    def numel(self) -> int:
        return int(np.prod(self.shape, dtype=np.int64)) if len(self.shape) > 0 else 1

    def is_empty(self) -> bool:
        return int(np.asarray(self.data).size) == 0

    def values(self) -> np.ndarray:
        flat = np.asarray(self.data).reshape(-1)
        if flat.size != self.numel:
            raise ShapeMismatch(
                f"Tensor payload has {flat.size} elements but shape {self.shape} needs {self.numel}."
            )
        return flat.reshape(self.shape if len(self.shape) > 0 else [])


@dataclass
class AttrValue:
    kind: AttrKind
    value: Any

    def _expect(self, kind: AttrKind) -> Any:
        if self.kind != kind:
            raise TypeError(
                f"Attribute holds {self.kind.name}, accessed as {kind.name}."
            )
        return self.value

    @property
    def b(self) -> bool:
        return self._expect(AttrKind.BOOL)

    @property
    def i(self) -> int:
        return self._expect(AttrKind.INT)

    @property
    def f(self) -> float:
        return self._expect(AttrKind.FLOAT)

    @property
    def s(self) -> str:
        return self._expect(AttrKind.STRING)

    @property
    def ints(self) -> List[int]:
        return self._expect(AttrKind.INT_LIST)

    @property
    def floats(self) -> List[float]:
        return self._expect(AttrKind.FLOAT_LIST)

    @property
    def tensor(self) -> TensorValue:
        return self._expect(AttrKind.TENSOR)

    @property
    def shape(self) -> List[int]:
        return self._expect(AttrKind.SHAPE)


@dataclass
class NodeDef:
    name: str
    op: str
    inputs: List[str] = field(default_factory=list)
    attr: Dict[str, AttrValue] = field(default_factory=dict)


@dataclass(frozen=True)
class Pin:
    name: str
    slot: int = 0


def parse_pin(ref: str) -> Pin:
    name, sep, slot_text = str(ref).partition(":")
    if sep == "":
        return Pin(name=name, slot=0)
    if not (slot_text.isascii() and slot_text.isdigit()):
        raise MalformedReference(f"Malformed input reference: '{ref}'")
    return Pin(name=name, slot=int(slot_text))


def has_attr(node: NodeDef, key: str) -> bool:
    return key in node.attr


def get_attr(node: NodeDef, key: str) -> AttrValue:
    if key not in node.attr:
        raise MissingAttribute(
            f"required attribute '{key}' is missing",
            node_name=node.name,
            node_op=node.op,
        )
    return node.attr[key]


class GraphDef:
    """Ordered node list with name lookup.

    Removing a node shifts the indices of every node after it; code that keeps
    positions across a removal must re-resolve them with ``index_of``.
    """

    def __init__(self, nodes: Optional[Sequence[NodeDef]] = None) -> None:
        self._nodes: List[NodeDef] = []
        self._by_name: Dict[str, NodeDef] = {}
        for node in nodes or []:
            self.add(node)

    def add(self, node: NodeDef) -> NodeDef:
        if node.name in self._by_name:
            raise ValueError(f"Node name already exists in graph: {node.name}")
        self._nodes.append(node)
        self._by_name[node.name] = node
        return node

    @property
    def nodes(self) -> List[NodeDef]:
        return list(self._nodes)

    def node(self, index: int) -> NodeDef:
        return self._nodes[index]

    def get(self, name: str) -> Optional[NodeDef]:
        return self._by_name.get(name, None)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def index_of(self, name: str) -> int:
        node = self._by_name.get(name, None)
        if node is None:
            return -1
        for idx, candidate in enumerate(self._nodes):
            if candidate is node:
                return idx
        return -1

    def remove(self, index: int) -> NodeDef:
        node = self._nodes.pop(index)
        if self._by_name.get(node.name, None) is node:
            del self._by_name[node.name]
        return node

    def rename(self, old_name: str, new_name: str) -> NodeDef:
        node = self._by_name[old_name]
        if new_name != old_name and new_name in self._by_name:
            raise ValueError(f"Node name already exists in graph: {new_name}")
        del self._by_name[old_name]
        node.name = new_name
        self._by_name[new_name] = node
        return node

    def copy(self) -> "GraphDef":
        return GraphDef(copy.deepcopy(self._nodes))

    def is_empty(self) -> bool:
        return len(self._nodes) == 0

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[NodeDef]:
        return iter(list(self._nodes))


def make_tensor(
    values: Any,
    dtype: Optional[str] = None,
    shape: Optional[Sequence[int]] = None,
) -> TensorValue:
    arr = np.asarray(values)
    if dtype is None:
        # Same defaults as tf.constant for python literals.
        if arr.dtype == np.float64:
            arr = arr.astype(np.float32)
        elif arr.dtype == np.int64:
            arr = arr.astype(np.int32)
        dtype = NUMPY_DTYPES_TO_TF_DTYPES[arr.dtype]
    else:
        arr = arr.astype(TF_DTYPES_TO_NUMPY_DTYPES[dtype])
    tensor_shape = list(arr.shape) if shape is None else [int(v) for v in shape]
    return TensorValue(dtype=dtype, shape=tensor_shape, data=arr.reshape(-1).copy())


def make_attr(value: Any) -> AttrValue:
    if isinstance(value, AttrValue):
        return value
    if isinstance(value, (bool, np.bool_)):
        return AttrValue(AttrKind.BOOL, bool(value))
    if isinstance(value, (int, np.integer)):
        return AttrValue(AttrKind.INT, int(value))
    if isinstance(value, (float, np.floating)):
        return AttrValue(AttrKind.FLOAT, float(value))
    if isinstance(value, bytes):
        return AttrValue(AttrKind.STRING, value.decode("utf-8"))
    if isinstance(value, str):
        return AttrValue(AttrKind.STRING, value)
    if isinstance(value, TensorValue):
        return AttrValue(AttrKind.TENSOR, value)
    if isinstance(value, np.ndarray):
        return AttrValue(AttrKind.TENSOR, make_tensor(value))
    if isinstance(value, (list, tuple)):
        if all(isinstance(v, (int, np.integer)) and not isinstance(v, bool) for v in value):
            return AttrValue(AttrKind.INT_LIST, [int(v) for v in value])
        return AttrValue(AttrKind.FLOAT_LIST, [float(v) for v in value])
    raise TypeError(f"Unsupported attribute value type: {type(value).__name__}")


def make_shape_attr(dims: Sequence[int]) -> AttrValue:
    return AttrValue(AttrKind.SHAPE, [int(v) for v in dims])


def make_node(
    op: str,
    inputs: Sequence[str],
    name: str,
    **attrs: Any,
) -> NodeDef:
    return NodeDef(
        name=str(name),
        op=str(op),
        inputs=[str(v) for v in inputs],
        attr={key: make_attr(value) for key, value in attrs.items()},
    )


def make_const_node(
    name: str,
    values: Any,
    dtype: Optional[str] = None,
    shape: Optional[Sequence[int]] = None,
) -> NodeDef:
    tensor = values if isinstance(values, TensorValue) else make_tensor(values, dtype=dtype, shape=shape)
    return NodeDef(
        name=str(name),
        op="Const",
        inputs=[],
        attr={
            "value": AttrValue(AttrKind.TENSOR, tensor),
            "dtype": AttrValue(AttrKind.STRING, tensor.dtype),
        },
    )


@dataclass
class LayerIR:
    layer_id: int
    name: str
    layer_type: str
    params: Dict[str, Any] = field(default_factory=dict)
    blobs: List[np.ndarray] = field(default_factory=list)


@dataclass(frozen=True)
class ConnectionIR:
    src_id: int
    src_slot: int
    dst_id: int
    dst_slot: int


@dataclass
class NetIR:
    """Target layer graph.

    Layer id 0 is the network input layer; every registered input name is one
    of its output slots.
    """
    name: str = "tf2dnn"
    layers: List[LayerIR] = field(default_factory=list)
    connections: List[ConnectionIR] = field(default_factory=list)
    input_names: List[str] = field(default_factory=list)
    preprocess_report: Optional[Dict[str, Any]] = None

    INPUT_LAYER_ID = 0

    def register_input(self, name: str) -> int:
        if name in self.input_names:
            return self.input_names.index(name)
        self.input_names.append(str(name))
        return len(self.input_names) - 1

    def add_layer(
        self,
        name: str,
        layer_type: str,
        params: Optional[Dict[str, Any]] = None,
        blobs: Optional[List[np.ndarray]] = None,
    ) -> int:
        if any(layer.name == name for layer in self.layers):
            raise DuplicateLayerName(f"Layer name already exists in net: {name}")
        layer_id = len(self.layers) + 1
        self.layers.append(
            LayerIR(
                layer_id=layer_id,
                name=str(name),
                layer_type=str(layer_type),
                params=dict(params or {}),
                blobs=list(blobs or []),
            )
        )
        return layer_id

    def has_layer_id(self, layer_id: int) -> bool:
        return layer_id == self.INPUT_LAYER_ID or 1 <= layer_id <= len(self.layers)

    def connect(self, src_id: int, src_slot: int, dst_id: int, dst_slot: int) -> None:
        for layer_id in [src_id, dst_id]:
            if not self.has_layer_id(layer_id):
                raise UnknownInput(f"Layer id is not registered in net: {layer_id}")
        self.connections.append(
            ConnectionIR(
                src_id=int(src_id),
                src_slot=int(src_slot),
                dst_id=int(dst_id),
                dst_slot=int(dst_slot),
            )
        )

    def get_layer(self, layer_id: int) -> LayerIR:
        return self.layers[layer_id - 1]

    def layer_by_name(self, name: str) -> Optional[LayerIR]:
        for layer in self.layers:
            if layer.name == name:
                return layer
        return None

    def inputs_of(self, layer_id: int) -> List[ConnectionIR]:
        return sorted(
            [c for c in self.connections if c.dst_id == layer_id],
            key=lambda c: c.dst_slot,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "inputs": list(self.input_names),
            "layers": [
                {
                    "id": layer.layer_id,
                    "name": layer.name,
                    "type": layer.layer_type,
                    "params": dict(layer.params),
                    "blob_shapes": [list(np.asarray(b).shape) for b in layer.blobs],
                }
                for layer in self.layers
            ],
            "connections": [
                [c.src_id, c.src_slot, c.dst_id, c.dst_slot]
                for c in self.connections
            ],
        }

    def blobs_dict(self) -> Dict[str, np.ndarray]:
        blobs: Dict[str, np.ndarray] = {}
        for layer in self.layers:
            for blob_idx, blob in enumerate(layer.blobs):
                blobs[f"{layer.name}:{blob_idx}"] = np.asarray(blob)
        return blobs
