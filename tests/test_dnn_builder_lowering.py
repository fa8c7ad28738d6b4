import numpy as np
import pytest

from tf2dnn.dnn_builder import lower_tf_to_net
from tf2dnn.dnn_builder.errors import (
    DuplicateLayerName,
    UnknownInput,
    UnsupportedConfiguration,
)
from tf2dnn.dnn_builder.ir import GraphDef, NetIR, make_const_node, make_node


def _placeholder(name: str = "x"):
    return make_node("Placeholder", [], name, dtype="DT_FLOAT")


def _nhwc_pool(name: str = "pool", input_ref: str = "x"):
    return make_node(
        "MaxPool",
        [input_ref],
        name,
        ksize=[1, 2, 2, 1],
        strides=[1, 2, 2, 1],
        padding="VALID",
        data_format="NHWC",
    )


def _layer_types(net: NetIR):
    return [layer.layer_type for layer in net.layers]


def _connections(net: NetIR):
    return [(c.src_id, c.src_slot, c.dst_id, c.dst_slot) for c in net.connections]


def _lower(nodes, **kwargs) -> NetIR:
    return lower_tf_to_net(GraphDef(nodes), **kwargs)


def test_conv2d_fuses_bias_add() -> None:
    w = np.arange(2 * 2 * 3 * 4, dtype=np.float32).reshape(2, 2, 3, 4)
    b = np.array([10, 20, 30, 40], dtype=np.float32)
    net = _lower(
        [
            _placeholder(),
            make_const_node("w", w),
            make_node(
                "Conv2D",
                ["x", "w"],
                "conv",
                strides=[1, 2, 2, 1],
                padding="SAME",
                data_format="NHWC",
            ),
            make_const_node("b", b),
            make_node("BiasAdd", ["conv", "b"], "bias"),
            make_node("Relu", ["bias"], "relu"),
        ]
    )
    assert net.input_names == ["x"]
    assert _layer_types(net) == ["Convolution", "ReLU"]
    assert _connections(net) == [(0, 0, 1, 0), (1, 0, 2, 0)]

    conv = net.layer_by_name("conv")
    assert conv.params["bias_term"] is True
    assert conv.params["num_output"] == 4
    assert (conv.params["kernel_h"], conv.params["kernel_w"]) == (2, 2)
    assert (conv.params["stride_h"], conv.params["stride_w"]) == (2, 2)
    assert conv.params["pad_mode"] == "SAME"
    np.testing.assert_array_equal(conv.blobs[0], w.transpose(3, 2, 0, 1))
    np.testing.assert_array_equal(conv.blobs[1], b)


def test_conv2d_nchw_strides() -> None:
    net = _lower(
        [
            _placeholder(),
            make_const_node("w", np.ones([1, 1, 2, 2], dtype=np.float32)),
            make_node(
                "Conv2D",
                ["x", "w"],
                "conv",
                strides=[1, 1, 3, 2],
                padding="VALID",
                data_format="NCHW",
            ),
        ]
    )
    conv = net.layer_by_name("conv")
    assert (conv.params["stride_h"], conv.params["stride_w"]) == (3, 2)
    assert conv.params["bias_term"] is False


def test_conv2d_rejects_batch_stride() -> None:
    with pytest.raises(UnsupportedConfiguration) as ex:
        _lower(
            [
                _placeholder(),
                make_const_node("w", np.ones([1, 1, 2, 2], dtype=np.float32)),
                make_node("Conv2D", ["x", "w"], "conv", strides=[2, 1, 1, 1], padding="VALID"),
            ]
        )
    assert ex.value.node_name == "conv"


def test_depthwise_kernel_is_interleaved() -> None:
    # (kh, kw, in_ch=2, multiplier=3)
    w = np.arange(6, dtype=np.float32).reshape(1, 1, 2, 3)
    net = _lower(
        [
            _placeholder(),
            make_const_node("w", w),
            make_node(
                "DepthwiseConv2dNative",
                ["x", "w"],
                "dw",
                strides=[1, 1, 1, 1],
                padding="SAME",
            ),
        ]
    )
    dw = net.layer_by_name("dw")
    assert dw.layer_type == "Convolution"
    assert dw.params["num_output"] == 6
    assert dw.blobs[0].shape == (6, 1, 1, 1)
    np.testing.assert_array_equal(dw.blobs[0].reshape(-1), w.reshape(-1))


def test_dilated_convolution_collapses_to_one_layer() -> None:
    net = _lower(
        [
            _placeholder(),
            make_const_node("block", np.array([2, 2], dtype=np.int32)),
            make_const_node("paddings", np.array([[3, 3], [1, 1]], dtype=np.int32)),
            make_node("SpaceToBatchND", ["x", "block", "paddings"], "s2b"),
            make_const_node("w", np.ones([3, 3, 1, 2], dtype=np.float32)),
            make_node("Conv2D", ["s2b", "w"], "conv", strides=[1, 1, 1, 1], padding="VALID"),
            make_const_node("crops", np.zeros([2, 2], dtype=np.int32)),
            make_node("BatchToSpaceND", ["conv", "block", "crops"], "b2s"),
            make_node("Relu", ["b2s"], "relu"),
        ]
    )
    assert _layer_types(net) == ["Convolution", "ReLU"]
    assert _connections(net) == [(0, 0, 1, 0), (1, 0, 2, 0)]
    conv = net.layer_by_name("conv")
    assert conv.params["dilation"] == 2
    assert (conv.params["pad_h"], conv.params["pad_w"]) == (3, 1)
    assert conv.params["pad_mode"] == ""


def test_dilation_must_be_uniform() -> None:
    with pytest.raises(UnsupportedConfiguration):
        _lower(
            [
                _placeholder(),
                make_const_node("block", np.array([2, 3], dtype=np.int32)),
                make_const_node("paddings", np.zeros([2, 2], dtype=np.int32)),
                make_node("SpaceToBatchND", ["x", "block", "paddings"], "s2b"),
                make_const_node("w", np.ones([3, 3, 1, 2], dtype=np.float32)),
                make_node("Conv2D", ["s2b", "w"], "conv", strides=[1, 1, 1, 1], padding="VALID"),
            ]
        )


@pytest.mark.parametrize(
    "padding, out_shape, expected_adj",
    [
        ("SAME", [1, 10, 9, 5], (1, 0)),
        ("VALID", [1, 10, 12, 5], (1, 1)),
    ],
)
def test_deconvolution_adjustments(padding, out_shape, expected_adj) -> None:
    # filter: (h, w, out_channels, in_channels)
    net = _lower(
        [
            _placeholder(),
            make_const_node("out_shape", np.array(out_shape, dtype=np.int32)),
            make_const_node("w", np.ones([3, 3, 5, 4], dtype=np.float32)),
            make_node(
                "Conv2DBackpropInput",
                ["out_shape", "w", "x"],
                "deconv",
                strides=[1, 2, 2, 1],
                padding=padding,
            ),
        ]
    )
    deconv = net.layer_by_name("deconv")
    assert deconv.layer_type == "Deconvolution"
    assert deconv.params["num_output"] == 5
    assert (deconv.params["adj_h"], deconv.params["adj_w"]) == expected_adj
    assert _connections(net) == [(0, 0, 1, 0)]


def test_leaky_relu_pattern() -> None:
    net = _lower(
        [
            _placeholder(),
            make_const_node("alpha", np.float32(0.25)),
            make_node("Mul", ["alpha", "x"], "mul"),
            make_node("Maximum", ["mul", "x"], "max"),
            make_node("Sigmoid", ["max"], "out"),
        ]
    )
    assert _layer_types(net) == ["ReLU", "Sigmoid"]
    assert net.layer_by_name("mul").params["negative_slope"] == pytest.approx(0.25)
    assert _connections(net) == [(0, 0, 1, 0), (1, 0, 2, 0)]


def test_scalar_mul_is_power() -> None:
    net = _lower(
        [
            _placeholder(),
            make_const_node("two", np.float32(2.0)),
            make_node("Mul", ["x", "two"], "mul"),
        ]
    )
    layer = net.layer_by_name("mul")
    assert layer.layer_type == "Power"
    assert layer.params["scale"] == pytest.approx(2.0)


def test_vector_mul_add_is_scale_with_bias() -> None:
    net = _lower(
        [
            _placeholder(),
            make_const_node("s", np.array([1, 2, 3], dtype=np.float32)),
            make_node("Mul", ["x", "s"], "mul"),
            make_const_node("b", np.array([4, 5, 6], dtype=np.float32)),
            make_node("Add", ["mul", "b"], "add"),
            make_node("Relu", ["add"], "relu"),
        ]
    )
    assert _layer_types(net) == ["Scale", "ReLU"]
    scale = net.layer_by_name("mul")
    assert scale.params["bias_term"] is True
    np.testing.assert_array_equal(scale.blobs[0], [1, 2, 3])
    np.testing.assert_array_equal(scale.blobs[1], [4, 5, 6])
    assert _connections(net) == [(0, 0, 1, 0), (1, 0, 2, 0)]


def test_mul_without_constant_is_eltwise_prod() -> None:
    net = _lower(
        [
            _placeholder("x"),
            _placeholder("y"),
            make_node("Mul", ["x", "y"], "mul"),
        ]
    )
    assert net.layer_by_name("mul").params == {"operation": "prod"}
    assert _connections(net) == [(0, 0, 1, 0), (0, 1, 1, 1)]


def test_add_with_constant_is_shift() -> None:
    net = _lower(
        [
            _placeholder(),
            make_const_node("b", np.array([1, 2], dtype=np.float32)),
            make_node("Add", ["b", "x"], "add"),
        ]
    )
    layer = net.layer_by_name("add")
    assert layer.layer_type == "Shift"
    np.testing.assert_array_equal(layer.blobs[0], [1, 2])
    assert _connections(net) == [(0, 0, 1, 0)]


def test_matmul_fuses_bias() -> None:
    w = np.arange(6, dtype=np.float32).reshape(3, 2)
    net = _lower(
        [
            _placeholder(),
            make_const_node("w", w),
            make_node("MatMul", ["x", "w"], "fc"),
            make_const_node("b", np.array([1, 2], dtype=np.float32)),
            make_node("BiasAdd", ["fc", "b"], "fc_bias"),
            make_node("Softmax", ["fc_bias"], "prob"),
        ]
    )
    assert _layer_types(net) == ["InnerProduct", "Softmax"]
    fc = net.layer_by_name("fc")
    assert fc.params["num_output"] == 2
    assert fc.params["bias_term"] is True
    np.testing.assert_array_equal(fc.blobs[0], w.T)
    assert _connections(net) == [(0, 0, 1, 0), (1, 0, 2, 0)]


def test_reshape_after_nhwc_inserts_permute() -> None:
    net = _lower(
        [
            _placeholder(),
            _nhwc_pool(),
            make_const_node("shape", np.array([1, -1], dtype=np.int32)),
            make_node("Reshape", ["pool", "shape"], "reshape"),
        ]
    )
    assert _layer_types(net) == ["Pooling", "Permute", "Reshape"]
    assert net.layer_by_name("reshape/nchw").params["order"] == [0, 2, 3, 1]
    assert net.layer_by_name("reshape").params["dim"] == [1, -1]
    assert _connections(net) == [(0, 0, 1, 0), (1, 0, 2, 0), (2, 0, 3, 0)]


def test_reshape_4d_shape_is_reordered() -> None:
    net = _lower(
        [
            _placeholder(),
            _nhwc_pool(),
            make_const_node("shape", np.array([1, 2, 3, 4], dtype=np.int32)),
            make_node("Reshape", ["pool", "shape"], "reshape"),
        ]
    )
    assert net.layer_by_name("reshape").params["dim"] == [1, 4, 2, 3]


def test_squeeze_nhwc_spatial_dims() -> None:
    net = _lower(
        [
            _placeholder(),
            _nhwc_pool(),
            make_node("Squeeze", ["pool"], "squeeze", squeeze_dims=[1, 2]),
        ]
    )
    assert _layer_types(net) == ["Pooling", "Permute", "Flatten"]


def test_squeeze_other_dims_rejected() -> None:
    with pytest.raises(UnsupportedConfiguration):
        _lower(
            [
                _placeholder(),
                _nhwc_pool(),
                make_node("Squeeze", ["pool"], "squeeze", squeeze_dims=[1]),
            ]
        )


def test_transpose_to_nchw_switches_layout() -> None:
    net = _lower(
        [
            _placeholder(),
            _nhwc_pool(),
            make_const_node("perm", np.array([0, 3, 1, 2], dtype=np.int32)),
            make_node("Transpose", ["pool", "perm"], "to_nchw"),
            make_node("Squeeze", ["to_nchw"], "squeeze", squeeze_dims=[2, 3]),
        ]
    )
    # the squeeze reads an NCHW tensor, so no permute is needed
    assert _layer_types(net) == ["Pooling", "Identity", "Flatten"]


def test_transpose_other_permutation_rejected() -> None:
    with pytest.raises(UnsupportedConfiguration):
        _lower(
            [
                _placeholder(),
                _nhwc_pool(),
                make_const_node("perm", np.array([0, 2, 1, 3], dtype=np.int32)),
                make_node("Transpose", ["pool", "perm"], "t"),
            ]
        )


def test_transpose_non_4d_is_permute() -> None:
    net = _lower(
        [
            _placeholder(),
            make_const_node("perm", np.array([0, 2, 1], dtype=np.int32)),
            make_node("Transpose", ["x", "perm"], "t"),
        ]
    )
    layer = net.layer_by_name("t")
    assert layer.layer_type == "Permute"
    assert layer.params["order"] == [0, 2, 1]


@pytest.mark.parametrize(
    "op, axis, expected",
    [("ConcatV2", 3, 1), ("ConcatV2", -1, 1), ("ConcatV2", -3, 2), ("Concat", 2, 3)],
)
def test_concat_axis(op, axis, expected) -> None:
    axis_node = make_const_node("axis", np.array(axis, dtype=np.int32))
    refs = ["axis", "x", "y"] if op == "Concat" else ["x", "y", "axis"]
    net = _lower(
        [
            _placeholder("x"),
            _placeholder("y"),
            axis_node,
            make_node(op, refs, "concat"),
        ]
    )
    assert net.layer_by_name("concat").params["axis"] == expected
    assert _connections(net) == [(0, 0, 1, 0), (0, 1, 1, 1)]


def test_split_axis_and_count() -> None:
    net = _lower(
        [
            _placeholder(),
            make_const_node("axis", np.array(3, dtype=np.int32)),
            make_node("Split", ["axis", "x"], "split", num_split=2),
            make_node("Relu", ["split:1"], "relu"),
        ]
    )
    split = net.layer_by_name("split")
    assert split.layer_type == "Slice"
    assert split.params == {"axis": 1, "num_split": 2}
    assert _connections(net) == [(0, 0, 1, 0), (1, 1, 2, 0)]


def test_slice_reorders_begin_and_size() -> None:
    net = _lower(
        [
            _placeholder(),
            make_const_node("begin", np.array([0, 1, 2, 3], dtype=np.int32)),
            make_const_node("size", np.array([1, 2, 3, 4], dtype=np.int32)),
            make_node("Slice", ["x", "begin", "size"], "slice"),
        ]
    )
    params = net.layer_by_name("slice").params
    assert params["begin"] == [0, 3, 1, 2]
    assert params["size"] == [1, 4, 2, 3]


def test_pad_reorders_pairs() -> None:
    net = _lower(
        [
            _placeholder(),
            make_const_node(
                "paddings",
                np.array([[0, 0], [1, 1], [2, 2], [3, 3]], dtype=np.int32),
            ),
            make_node("Pad", ["x", "paddings"], "pad"),
        ]
    )
    assert net.layer_by_name("pad").params["paddings"] == [0, 0, 3, 3, 1, 1, 2, 2]


@pytest.mark.parametrize("keep_dims, expected_types", [
    (False, ["Pooling", "Pooling", "Flatten", "ReLU"]),
    (True, ["Pooling", "Pooling", "ReLU"]),
])
def test_mean_global_pooling(keep_dims, expected_types) -> None:
    net = _lower(
        [
            _placeholder(),
            _nhwc_pool(),
            make_const_node("indices", np.array([1, 2], dtype=np.int32)),
            make_node("Mean", ["pool", "indices"], "mean", keep_dims=keep_dims),
            make_node("Relu", ["mean"], "relu"),
        ]
    )
    assert _layer_types(net) == expected_types
    mean = net.layer_by_name("mean")
    assert mean.params == {"pool": "ave", "global_pooling": True}
    relu_input = net.inputs_of(net.layer_by_name("relu").layer_id)[0]
    assert relu_input.src_id == len(expected_types) - 1


def test_mean_other_axes_rejected() -> None:
    with pytest.raises(UnsupportedConfiguration):
        _lower(
            [
                _placeholder(),
                make_const_node("indices", np.array([3], dtype=np.int32)),
                make_node("Mean", ["x", "indices"], "mean"),
            ]
        )


def _batch_norm_nodes(is_training: bool):
    empty = np.zeros([0], dtype=np.float32)
    return [
        _placeholder(),
        make_const_node("gamma", np.array([1, 2], dtype=np.float32)),
        make_const_node("beta", np.array([3, 4], dtype=np.float32)),
        make_const_node("mean", empty if is_training else np.array([5, 6], dtype=np.float32)),
        make_const_node("var", empty if is_training else np.array([7, 8], dtype=np.float32)),
        make_node(
            "FusedBatchNorm",
            ["x", "gamma", "beta", "mean", "var"],
            "bn",
            epsilon=0.001,
            is_training=is_training,
        ),
    ]


def test_fused_batch_norm_inference() -> None:
    net = _lower(_batch_norm_nodes(False))
    bn = net.layer_by_name("bn")
    assert bn.layer_type == "BatchNorm"
    assert bn.params["has_weight"] is True
    assert bn.params["has_bias"] is True
    assert bn.params["eps"] == pytest.approx(0.001)
    expected = [[5, 6], [7, 8], [1, 2], [3, 4]]
    for blob, values in zip(bn.blobs, expected):
        np.testing.assert_array_equal(blob, values)


def test_fused_batch_norm_training_adds_mvn() -> None:
    net = _lower(_batch_norm_nodes(True))
    assert _layer_types(net) == ["MVN", "BatchNorm"]
    assert net.layers[0].name == "bn/MVN"
    assert _connections(net) == [(0, 0, 1, 0), (1, 0, 2, 0)]
    bn = net.layer_by_name("bn")
    np.testing.assert_array_equal(bn.blobs[0], [0, 0])
    np.testing.assert_array_equal(bn.blobs[1], [1, 1])


def test_lrn_params() -> None:
    net = _lower(
        [
            _placeholder(),
            make_node("LRN", ["x"], "lrn", alpha=0.5, beta=0.75, depth_radius=2, bias=1.0),
        ]
    )
    params = net.layer_by_name("lrn").params
    assert params["local_size"] == 5
    assert params["norm_by_size"] is False
    assert params["beta"] == pytest.approx(0.75)


@pytest.mark.parametrize("axes, expected", [([3], (1, 1)), ([1, 2], (2, 3))])
def test_l2_normalize_axes(axes, expected) -> None:
    net = _lower(
        [
            _placeholder(),
            _nhwc_pool(),
            make_const_node("axes", np.array(axes, dtype=np.int32)),
            make_node("L2Normalize", ["pool", "axes"], "l2"),
        ]
    )
    params = net.layer_by_name("l2").params
    assert (params["start_axis"], params["end_axis"]) == expected


def test_block_lstm_weights() -> None:
    w = np.arange(12, dtype=np.float32).reshape(3, 4)
    b = np.array([10, 20, 30, 40], dtype=np.float32)
    net = _lower(
        [
            _placeholder(),
            make_const_node("seq_len", np.array(5, dtype=np.int64)),
            make_const_node("zeros", np.zeros([1, 1], dtype=np.float32)),
            make_const_node("w", w),
            make_const_node("wci", np.array([0.1], dtype=np.float32)),
            make_const_node("wcf", np.array([0.2], dtype=np.float32)),
            make_const_node("wco", np.array([0.3], dtype=np.float32)),
            make_const_node("b", b),
            make_node(
                "BlockLSTM",
                ["seq_len", "x", "zeros", "zeros", "w", "wci", "wcf", "wco", "b"],
                "lstm",
                forget_bias=1.0,
                cell_clip=-1.0,
                use_peephole=True,
            ),
        ]
    )
    lstm = net.layer_by_name("lstm")
    assert lstm.layer_type == "LSTM"
    assert lstm.params == {"forget_bias": 1.0, "use_peephole": True}
    assert len(lstm.blobs) == 6
    ifog = w[:, [0, 2, 3, 1]]
    np.testing.assert_array_equal(lstm.blobs[0], ifog[2:].T)
    np.testing.assert_array_equal(lstm.blobs[1], ifog[:2].T)
    np.testing.assert_array_equal(lstm.blobs[2], [10, 30, 40, 20])
    np.testing.assert_allclose(lstm.blobs[3], [[0.1]])
    assert _connections(net) == [(0, 0, 1, 0)]


def test_block_lstm_cell_clip() -> None:
    net = _lower(
        [
            _placeholder(),
            make_const_node("seq_len", np.array(5, dtype=np.int64)),
            make_const_node("zeros", np.zeros([1, 1], dtype=np.float32)),
            make_const_node("w", np.zeros([3, 4], dtype=np.float32)),
            make_const_node("b", np.zeros([4], dtype=np.float32)),
            make_node(
                "BlockLSTM",
                ["seq_len", "x", "zeros", "zeros", "w", "zeros", "zeros", "zeros", "b"],
                "lstm",
                cell_clip=3.0,
            ),
        ]
    )
    params = net.layer_by_name("lstm").params
    assert params["use_cell_clip"] is True
    assert params["cell_clip"] == pytest.approx(3.0)


def test_prior_box_and_detection_output() -> None:
    net = _lower(
        [
            _placeholder("feat"),
            _placeholder("image"),
            _placeholder("loc"),
            _placeholder("conf"),
            make_node(
                "PriorBox",
                ["feat", "image"],
                "priors",
                min_size=30,
                flip=True,
                offset=0.5,
                aspect_ratio=np.array([2.0, 3.0], dtype=np.float32),
            ),
            make_node(
                "DetectionOutput",
                ["loc", "conf", "priors"],
                "detections",
                num_classes=21,
                code_type="CENTER_SIZE",
                nms_threshold=0.45,
            ),
        ]
    )
    priors = net.layer_by_name("priors").params
    assert priors["min_size"] == 30
    assert priors["aspect_ratio"] == [2.0, 3.0]
    detections = net.layer_by_name("detections").params
    assert detections["num_classes"] == 21
    assert detections["code_type"] == "CENTER_SIZE"
    assert _connections(net) == [
        (0, 0, 1, 0),
        (0, 1, 1, 1),
        (0, 2, 2, 0),
        (0, 3, 2, 1),
        (1, 0, 2, 2),
    ]


def test_unknown_op_becomes_generic_layer() -> None:
    net = _lower(
        [
            _placeholder(),
            make_const_node("k", np.array([1, 2], dtype=np.int32)),
            make_node("MyCustomOp", ["x", "k"], "custom", mode="fast", rate=0.5),
        ]
    )
    custom = net.layer_by_name("custom")
    assert custom.layer_type == "MyCustomOp"
    assert custom.params == {"mode": "fast", "rate": 0.5}
    np.testing.assert_array_equal(custom.blobs[0], [1, 2])
    assert _connections(net) == [(0, 0, 1, 0)]


def test_unknown_op_rejected_when_generic_disabled() -> None:
    with pytest.raises(UnsupportedConfiguration) as ex:
        _lower(
            [_placeholder(), make_node("MyCustomOp", ["x"], "custom")],
            allow_generic_ops=False,
        )
    assert ex.value.reason_code == "unsupported_tf_op"
    assert ex.value.node_name == "custom"


def test_unregistered_producer_raises_unknown_input() -> None:
    with pytest.raises(UnknownInput) as ex:
        _lower([make_node("Relu", ["missing"], "relu")])
    assert ex.value.node_name == "relu"
    assert ex.value.node_op == "Relu"


def test_helper_name_collision_raises() -> None:
    with pytest.raises(DuplicateLayerName):
        _lower(
            [
                _placeholder(),
                _nhwc_pool(),
                make_const_node("indices", np.array([1, 2], dtype=np.int32)),
                make_node("Mean", ["pool", "indices"], "mean"),
                make_node("Relu", ["x"], "mean/flatten"),
            ]
        )


def test_identity_ops_removed_by_default() -> None:
    nodes = [
        _placeholder(),
        make_node("Identity", ["x"], "id"),
        make_node("Relu", ["id"], "relu"),
    ]
    graph = GraphDef(nodes)
    net = lower_tf_to_net(graph)
    assert _layer_types(net) == ["ReLU"]
    assert _connections(net) == [(0, 0, 1, 0)]
    # the caller's graph is left untouched
    assert [node.name for node in graph] == ["x", "id", "relu"]

    kept = lower_tf_to_net(graph, remove_identity_ops=False)
    assert _layer_types(kept) == ["Identity", "ReLU"]


def test_text_override_defines_topology() -> None:
    net_bin = GraphDef(
        [
            _placeholder(),
            make_const_node("w", np.ones([1, 1, 2, 3], dtype=np.float32)),
            make_node("Conv2D", ["x", "w"], "conv", strides=[1, 1, 1, 1], padding="SAME"),
        ]
    )
    net_txt = GraphDef(
        [
            _placeholder(),
            make_node("Conv2D", ["x", "w"], "conv_txt", strides=[1, 1, 1, 1], padding="VALID"),
            make_node("Relu", ["conv_txt"], "relu"),
        ]
    )
    net = lower_tf_to_net(net_bin, net_txt)
    assert [layer.name for layer in net.layers] == ["conv_txt", "relu"]
    assert net.layer_by_name("conv_txt").blobs[0].shape == (3, 2, 1, 1)


def test_lowering_twice_gives_same_net() -> None:
    graph = GraphDef(
        [
            _placeholder(),
            make_const_node("s", np.array([1, 2, 3], dtype=np.float32)),
            make_node("Mul", ["x", "s"], "mul"),
            make_const_node("b", np.array([4, 5, 6], dtype=np.float32)),
            make_node("Add", ["mul", "b"], "add"),
        ]
    )
    first = lower_tf_to_net(graph)
    second = lower_tf_to_net(graph)
    assert first.to_dict() == second.to_dict()


def test_resize_nearest_neighbor() -> None:
    net = _lower(
        [
            _placeholder(),
            make_const_node("size", np.array([32, 48], dtype=np.int32)),
            make_node("ResizeNearestNeighbor", ["x", "size"], "resize", align_corners=True),
        ]
    )
    assert net.layer_by_name("resize").params == {
        "height": 32,
        "width": 48,
        "align_corners": True,
    }


def test_average_pool_params() -> None:
    net = _lower(
        [
            _placeholder(),
            make_node(
                "AvgPool",
                ["x"],
                "pool",
                ksize=[1, 3, 3, 1],
                strides=[1, 2, 2, 1],
                padding="SAME",
            ),
        ]
    )
    assert net.layer_by_name("pool").params == {
        "pool": "ave",
        "ave_pool_padded_area": False,
        "kernel_h": 3,
        "kernel_w": 3,
        "stride_h": 2,
        "stride_w": 2,
        "pad_mode": "SAME",
    }
