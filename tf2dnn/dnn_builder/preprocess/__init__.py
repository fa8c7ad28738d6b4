from __future__ import annotations

from tf2dnn.dnn_builder.preprocess.pipeline import (
    clear_preprocess_rules,
    get_registered_preprocess_rule_ids,
    register_preprocess_rule,
    run_preprocess_pipeline,
)
from tf2dnn.dnn_builder.preprocess.rules import (
    RELU6_KERAS_RULE_ID,
    register_default_preprocess_rules,
    register_relu6_keras_rule,
)

__all__ = [
    "RELU6_KERAS_RULE_ID",
    "clear_preprocess_rules",
    "get_registered_preprocess_rule_ids",
    "register_default_preprocess_rules",
    "register_preprocess_rule",
    "register_relu6_keras_rule",
    "run_preprocess_pipeline",
]
