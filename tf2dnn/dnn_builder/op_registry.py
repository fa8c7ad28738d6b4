from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from tf2dnn.dnn_builder.errors import MissingAttribute, UnsupportedConfiguration
from tf2dnn.dnn_builder.ir import NodeDef
from tf2dnn.dnn_builder.op_builders import (
    build_activation_op,
    build_bias_add_op,
    build_block_lstm_op,
    build_concat_op,
    build_conv2d_backprop_input_op,
    build_conv2d_op,
    build_detection_output_op,
    build_flatten_op,
    build_fused_batch_norm_op,
    build_generic_op,
    build_l2_normalize_op,
    build_lrn_op,
    build_matmul_op,
    build_mean_op,
    build_mul_op,
    build_pad_op,
    build_placeholder_op,
    build_pool2d_op,
    build_prior_box_op,
    build_reshape_op,
    build_resize_nearest_op,
    build_slice_op,
    build_softmax_op,
    build_split_op,
    build_transpose_op,
)
from tf2dnn.utils.enums import ACTIVATION_LAYER_TYPES


@dataclass(frozen=True)
class ValidationSpec:
    min_inputs: int = 0
    max_inputs: Optional[int] = None
    required_attrs: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class DispatchEntry:
    tf_op: str
    layer_types: List[str]
    builder: Callable[[Any, Any], None]
    validation: ValidationSpec = field(default_factory=ValidationSpec)


@dataclass(frozen=True)
class DispatchResolution:
    entry: DispatchEntry
    dispatch_mode: str
    reason_code: Optional[str] = None
    message: Optional[str] = None


def _validate_counts(node: NodeDef, spec: ValidationSpec) -> None:
    input_count = len(node.inputs)
    if input_count < int(spec.min_inputs):
        raise UnsupportedConfiguration(
            f"input_count={input_count} is smaller than min_inputs={spec.min_inputs}",
            node_name=node.name,
            node_op=node.op,
            reason_code="invalid_input_count",
        )
    if spec.max_inputs is not None and input_count > int(spec.max_inputs):
        raise UnsupportedConfiguration(
            f"input_count={input_count} exceeds max_inputs={spec.max_inputs}",
            node_name=node.name,
            node_op=node.op,
            reason_code="invalid_input_count",
        )


def _validate_attrs(node: NodeDef, spec: ValidationSpec) -> None:
    for attr in spec.required_attrs:
        if attr not in node.attr:
            raise MissingAttribute(
                f"required attribute '{attr}' is missing",
                node_name=node.name,
                node_op=node.op,
            )


def _entry(
    tf_op: str,
    layer_types: List[str],
    builder: Callable[[Any, Any], None],
    min_inputs: int = 0,
    max_inputs: Optional[int] = None,
    required_attrs: Optional[List[str]] = None,
) -> DispatchEntry:
    return DispatchEntry(
        tf_op=tf_op,
        layer_types=layer_types,
        builder=builder,
        validation=ValidationSpec(
            min_inputs=min_inputs,
            max_inputs=max_inputs,
            required_attrs=list(required_attrs or []),
        ),
    )


def _generic_dispatch_entry_for_node(node_op: str) -> DispatchEntry:
    return DispatchEntry(
        tf_op=str(node_op),
        layer_types=[str(node_op)],
        builder=build_generic_op,
    )


_DISPATCH_REGISTRY: Dict[str, DispatchEntry] = {
    "Conv2D": _entry("Conv2D", ["Convolution"], build_conv2d_op, 2, 2),
    "DepthwiseConv2dNative": _entry(
        "DepthwiseConv2dNative", ["Convolution"], build_conv2d_op, 2, 2
    ),
    "SpaceToBatchND": _entry("SpaceToBatchND", ["Convolution"], build_conv2d_op, 3, 3),
    "Conv2DBackpropInput": _entry(
        "Conv2DBackpropInput",
        ["Deconvolution"],
        build_conv2d_backprop_input_op,
        3,
        3,
        ["strides", "padding"],
    ),
    "BiasAdd": _entry("BiasAdd", ["Shift", "Eltwise"], build_bias_add_op, 2, 2),
    "Add": _entry("Add", ["Shift", "Eltwise"], build_bias_add_op, 2),
    "Mul": _entry("Mul", ["Power", "ReLU", "Scale", "Eltwise"], build_mul_op, 2),
    "MatMul": _entry("MatMul", ["InnerProduct"], build_matmul_op, 2, 2),
    "Reshape": _entry("Reshape", ["Reshape", "Permute"], build_reshape_op, 2, 2),
    "Flatten": _entry("Flatten", ["Flatten", "Permute"], build_flatten_op, 1),
    "Squeeze": _entry(
        "Squeeze", ["Flatten", "Permute"], build_flatten_op, 1, 1, ["squeeze_dims"]
    ),
    "Transpose": _entry("Transpose", ["Identity", "Permute"], build_transpose_op, 2, 2),
    "LRN": _entry("LRN", ["LRN"], build_lrn_op, 1),
    "Concat": _entry("Concat", ["Concat"], build_concat_op, 2),
    "ConcatV2": _entry("ConcatV2", ["Concat"], build_concat_op, 2),
    "MaxPool": _entry("MaxPool", ["Pooling"], build_pool2d_op, 1),
    "AvgPool": _entry("AvgPool", ["Pooling"], build_pool2d_op, 1),
    "Mean": _entry("Mean", ["Pooling", "Flatten"], build_mean_op, 2, 2),
    "Placeholder": _entry("Placeholder", [], build_placeholder_op, 0, 0),
    "Split": _entry("Split", ["Slice"], build_split_op, 2, 2),
    "Slice": _entry("Slice", ["Slice"], build_slice_op, 3, 3),
    "Pad": _entry("Pad", ["Padding"], build_pad_op, 2),
    "FusedBatchNorm": _entry(
        "FusedBatchNorm", ["BatchNorm", "MVN"], build_fused_batch_norm_op, 5, 5
    ),
    "FusedBatchNormV3": _entry(
        "FusedBatchNormV3", ["BatchNorm", "MVN"], build_fused_batch_norm_op, 5, 5
    ),
    "BlockLSTM": _entry("BlockLSTM", ["LSTM"], build_block_lstm_op, 9, 9),
    "ResizeNearestNeighbor": _entry(
        "ResizeNearestNeighbor", ["ResizeNearestNeighbor"], build_resize_nearest_op, 2, 2
    ),
    "L2Normalize": _entry("L2Normalize", ["Normalize"], build_l2_normalize_op, 2, 2),
    "PriorBox": _entry("PriorBox", ["PriorBox"], build_prior_box_op, 2),
    "DetectionOutput": _entry(
        "DetectionOutput", ["DetectionOutput"], build_detection_output_op, 3
    ),
    "Softmax": _entry("Softmax", ["Softmax"], build_softmax_op, 1),
}

for _tf_op, _layer_type in ACTIVATION_LAYER_TYPES.items():
    _DISPATCH_REGISTRY[_tf_op] = _entry(_tf_op, [_layer_type], build_activation_op, 1)


def get_dispatch_registry() -> Dict[str, DispatchEntry]:
    return dict(_DISPATCH_REGISTRY)


def get_dispatch_entry(tf_op: str) -> Optional[DispatchEntry]:
    return _DISPATCH_REGISTRY.get(str(tf_op))


def get_supported_tf_ops() -> List[str]:
    return sorted(_DISPATCH_REGISTRY.keys())


def resolve_node_dispatch(node: NodeDef, ctx: Any) -> DispatchResolution:
    entry = get_dispatch_entry(node.op)
    if entry is None:
        if not bool(getattr(ctx, "allow_generic_ops", True)):
            raise UnsupportedConfiguration(
                "This TensorFlow op has no lowering rule and generic lowering is disabled. "
                f"Enable allow_generic_ops to emit it as a custom layer. op={node.op}",
                node_name=node.name,
                node_op=node.op,
                reason_code="unsupported_tf_op",
            )
        return DispatchResolution(
            entry=_generic_dispatch_entry_for_node(node.op),
            dispatch_mode="generic",
            reason_code="generic_op_lowered",
            message=f'Lowered as a generic "{node.op}" layer',
        )
    _validate_counts(node, entry.validation)
    _validate_attrs(node, entry.validation)
    return DispatchResolution(
        entry=entry,
        dispatch_mode="builtin",
    )
