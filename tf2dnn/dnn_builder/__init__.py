from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

import numpy as np

from tf2dnn.dnn_builder.constants import DEQUANTIZE_ROUNDING_MODES
from tf2dnn.dnn_builder.ir import GraphDef, NetIR
from tf2dnn.dnn_builder.lower_from_tf import (
    build_op_coverage_report,
    lower_tf_to_net,
    write_op_coverage_report,
)
from tf2dnn.dnn_builder.preprocess import register_default_preprocess_rules
from tf2dnn.utils.logging import Color, info

register_default_preprocess_rules()

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


def _json_default(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError(f"{key} must be a boolean. value={value}")


def _resolve_lowering_controls(kwargs: Dict[str, Any]) -> Dict[str, Any]:
    allow_generic_ops = kwargs.get(
        "allow_generic_ops",
        os.environ.get("TF2DNN_ALLOW_GENERIC_OPS", "1"),
    )
    remove_identity_ops = kwargs.get(
        "remove_identity_ops",
        os.environ.get("TF2DNN_REMOVE_IDENTITY_OPS", "1"),
    )
    dequantize_rounding = kwargs.get(
        "dequantize_rounding",
        os.environ.get("TF2DNN_DEQUANTIZE_ROUNDING", "none"),
    )
    if dequantize_rounding not in DEQUANTIZE_ROUNDING_MODES:
        raise ValueError(
            f"dequantize_rounding must be one of {DEQUANTIZE_ROUNDING_MODES}. "
            f"value={dequantize_rounding}"
        )
    enabled_rule_ids = kwargs.get("enabled_rule_ids", None)
    return {
        "allow_generic_ops": _as_bool(allow_generic_ops, "allow_generic_ops"),
        "remove_identity_ops": _as_bool(remove_identity_ops, "remove_identity_ops"),
        "dequantize_rounding": str(dequantize_rounding),
        "enabled_rule_ids": None if enabled_rule_ids is None else list(enabled_rule_ids),
    }


def read_net_from_tensorflow(
    model_path: str,
    config_path: Optional[str] = None,
    **kwargs: Any,
) -> NetIR:
    """Import a frozen ``.pb`` graph, with an optional ``.pbtxt`` topology override."""
    from tf2dnn.dnn_builder.graph_loader import load_graph_def, load_graph_def_text

    net_bin = load_graph_def(model_path)
    net_txt = load_graph_def_text(config_path) if config_path else GraphDef()
    return lower_tf_to_net(
        net_bin,
        net_txt,
        name=kwargs.get("name", "tf2dnn"),
        **_resolve_lowering_controls(kwargs),
    )


def read_net_from_tensorflow_buffer(
    model_bytes: bytes,
    config_bytes: Optional[bytes] = None,
    **kwargs: Any,
) -> NetIR:
    from tf2dnn.dnn_builder.graph_loader import parse_graph_def, parse_graph_def_text

    net_bin = parse_graph_def(model_bytes)
    net_txt = parse_graph_def_text(config_bytes) if config_bytes else GraphDef()
    return lower_tf_to_net(
        net_bin,
        net_txt,
        name=kwargs.get("name", "tf2dnn"),
        **_resolve_lowering_controls(kwargs),
    )


def export_net_from_tensorflow(**kwargs: Any) -> Dict[str, Any]:
    """Lower a loaded graph pair and write the net summary, weights and coverage report."""
    output_folder_path = kwargs.get("output_folder_path", "saved_model")
    output_file_name = kwargs.get("output_file_name", "model")
    net_bin = kwargs.get("net_bin", None)
    net_txt = kwargs.get("net_txt", None)
    output_weights = bool(kwargs.get("output_weights", False))
    report_op_coverage = bool(kwargs.get("report_op_coverage", False))
    controls = _resolve_lowering_controls(kwargs)

    if net_bin is None:
        raise ValueError("net_bin is required.")

    os.makedirs(output_folder_path, exist_ok=True)
    op_coverage_report_path = None
    if report_op_coverage:
        op_coverage_report_path = os.path.join(
            output_folder_path,
            f"{output_file_name}_op_coverage_report.json",
        )

    def _write_coverage_report(conversion_error: str | None, preprocess_report=None) -> None:
        if op_coverage_report_path is None:
            return
        graph = net_txt if net_txt is not None and not net_txt.is_empty() else net_bin
        report = build_op_coverage_report(
            graph=graph,
            output_file_name=output_file_name,
            conversion_error=conversion_error,
            allow_generic_ops=controls["allow_generic_ops"],
            preprocess_report=preprocess_report,
        )
        write_op_coverage_report(
            report=report,
            output_report_path=op_coverage_report_path,
        )

    try:
        net = lower_tf_to_net(
            net_bin,
            net_txt,
            name=output_file_name,
            **controls,
        )
    except Exception as ex:
        _write_coverage_report(str(ex))
        raise

    _write_coverage_report(None, net.preprocess_report)

    net_json_path = os.path.join(output_folder_path, f"{output_file_name}_net.json")
    with open(net_json_path, "w", encoding="utf-8") as f:
        json.dump(net.to_dict(), f, ensure_ascii=False, indent=2, default=_json_default)
    info(Color.GREEN('Net summary output complete!') + f' {net_json_path}')

    weights_path = None
    if output_weights:
        weights_path = os.path.join(output_folder_path, f"{output_file_name}_weights.npz")
        np.savez(weights_path, **net.blobs_dict())
        info(Color.GREEN('Weights output complete!') + f' {weights_path}')

    return {
        "net": net,
        "net_json_path": net_json_path,
        "weights_path": weights_path,
        "op_coverage_report_path": op_coverage_report_path,
    }


__all__ = [
    "build_op_coverage_report",
    "export_net_from_tensorflow",
    "lower_tf_to_net",
    "read_net_from_tensorflow",
    "read_net_from_tensorflow_buffer",
    "write_op_coverage_report",
]
