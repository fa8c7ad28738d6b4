from __future__ import annotations

from tf2dnn.dnn_builder.preprocess.rules.relu6_keras import (
    RELU6_KERAS_RULE_ID,
    fuse_relu6_keras,
    register_relu6_keras_rule,
)


def register_default_preprocess_rules() -> None:
    register_relu6_keras_rule()


__all__ = [
    "RELU6_KERAS_RULE_ID",
    "fuse_relu6_keras",
    "register_default_preprocess_rules",
    "register_relu6_keras_rule",
]
