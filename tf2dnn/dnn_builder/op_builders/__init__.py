from tf2dnn.dnn_builder.op_builders.elementwise import (
    build_activation_op,
    build_bias_add_op,
    build_mul_op,
    build_softmax_op,
)
from tf2dnn.dnn_builder.op_builders.shape import (
    build_concat_op,
    build_flatten_op,
    build_pad_op,
    build_placeholder_op,
    build_reshape_op,
    build_resize_nearest_op,
    build_slice_op,
    build_split_op,
    build_transpose_op,
)
from tf2dnn.dnn_builder.op_builders.conv import (
    build_conv2d_backprop_input_op,
    build_conv2d_op,
)
from tf2dnn.dnn_builder.op_builders.pool import (
    build_mean_op,
    build_pool2d_op,
)
from tf2dnn.dnn_builder.op_builders.fc import (
    build_matmul_op,
)
from tf2dnn.dnn_builder.op_builders.norm import (
    build_fused_batch_norm_op,
    build_l2_normalize_op,
    build_lrn_op,
)
from tf2dnn.dnn_builder.op_builders.recurrent import (
    build_block_lstm_op,
)
from tf2dnn.dnn_builder.op_builders.detection import (
    build_detection_output_op,
    build_prior_box_op,
)
from tf2dnn.dnn_builder.op_builders.custom import (
    build_generic_op,
)

__all__ = [
    "build_activation_op",
    "build_bias_add_op",
    "build_block_lstm_op",
    "build_concat_op",
    "build_conv2d_backprop_input_op",
    "build_conv2d_op",
    "build_detection_output_op",
    "build_flatten_op",
    "build_fused_batch_norm_op",
    "build_generic_op",
    "build_l2_normalize_op",
    "build_lrn_op",
    "build_matmul_op",
    "build_mean_op",
    "build_mul_op",
    "build_pad_op",
    "build_placeholder_op",
    "build_pool2d_op",
    "build_prior_box_op",
    "build_reshape_op",
    "build_resize_nearest_op",
    "build_slice_op",
    "build_softmax_op",
    "build_split_op",
    "build_transpose_op",
]
