import numpy as np
import pytest

from tf2dnn.dnn_builder.errors import (
    ShapeMismatch,
    UnsupportedConfiguration,
    UnsupportedTensorType,
)
from tf2dnn.dnn_builder.ir import make_tensor
from tf2dnn.dnn_builder.tensor_reorder import (
    blob_from_tensor,
    int_values,
    interleave_depthwise_kernel,
    kernel_from_tensor,
    kernel_oihw_to_hwio,
    matmul_weights,
    peephole_matrix,
    reorder_lstm_gates,
    split_lstm_weights,
)


def test_blob_from_tensor_reorders_rank4_to_nchw() -> None:
    nhwc = np.arange(2 * 3 * 4 * 5, dtype=np.float32).reshape(2, 3, 4, 5)
    blob = blob_from_tensor(make_tensor(nhwc))
    assert blob.shape == (2, 5, 3, 4)
    np.testing.assert_array_equal(blob, nhwc.transpose(0, 3, 1, 2))


def test_blob_from_tensor_keeps_lower_ranks() -> None:
    values = np.arange(6, dtype=np.float64).reshape(2, 3)
    blob = blob_from_tensor(make_tensor(values, dtype="DT_DOUBLE"))
    assert blob.dtype == np.float32
    np.testing.assert_array_equal(blob, values.astype(np.float32))
    assert blob_from_tensor(make_tensor(np.float32(3.0))).shape == (1,)


def test_blob_from_tensor_rejects_integer_and_high_rank() -> None:
    with pytest.raises(UnsupportedTensorType):
        blob_from_tensor(make_tensor(np.arange(4, dtype=np.int32)))
    with pytest.raises(UnsupportedConfiguration):
        blob_from_tensor(make_tensor(np.zeros([1, 1, 1, 1, 2], dtype=np.float32)))


def test_kernel_from_tensor_hwio_to_oihw() -> None:
    hwio = np.arange(3 * 2 * 4 * 5, dtype=np.float32).reshape(3, 2, 4, 5)
    kernel = kernel_from_tensor(make_tensor(hwio))
    assert kernel.shape == (5, 4, 3, 2)
    np.testing.assert_array_equal(kernel, hwio.transpose(3, 2, 0, 1))
    np.testing.assert_array_equal(kernel_oihw_to_hwio(kernel), hwio)


def test_kernel_from_tensor_requires_4d_float() -> None:
    with pytest.raises(UnsupportedConfiguration):
        kernel_from_tensor(make_tensor(np.zeros([3, 3], dtype=np.float32)))
    with pytest.raises(UnsupportedTensorType):
        kernel_from_tensor(make_tensor(np.zeros([1, 1, 1, 1], dtype=np.float64), dtype="DT_DOUBLE"))


def test_int_values_requires_index_dtype() -> None:
    assert int_values(make_tensor([1, 2])) == [1, 2]
    assert int_values(make_tensor(np.array([3], dtype=np.int64))) == [3]
    with pytest.raises(UnsupportedConfiguration):
        int_values(make_tensor([1.0]))


def test_interleave_depthwise_kernel() -> None:
    # (multiplier=3, in_ch=2, 1, 1)
    kernel = np.arange(6, dtype=np.float32).reshape(3, 2, 1, 1)
    dst = interleave_depthwise_kernel(kernel)
    assert dst.shape == (6, 1, 1, 1)
    # channel c, multiplier m -> c * 3 + m
    np.testing.assert_array_equal(dst[:, 0, 0, 0], [0, 2, 4, 1, 3, 5])


def test_matmul_weights_transposes_second_operand() -> None:
    w = np.arange(6, dtype=np.float32).reshape(3, 2)
    np.testing.assert_array_equal(matmul_weights(w, 1), w.T)
    np.testing.assert_array_equal(matmul_weights(w, 0), w)


def test_reorder_lstm_gates_igfo_to_ifog() -> None:
    weights = np.array([[10, 20, 30, 40], [11, 21, 31, 41]], dtype=np.float32)
    np.testing.assert_array_equal(
        reorder_lstm_gates(weights),
        np.array([[10, 30, 40, 20], [11, 31, 41, 21]], dtype=np.float32),
    )
    with pytest.raises(ShapeMismatch):
        reorder_lstm_gates(np.zeros([2, 6], dtype=np.float32))


def test_split_lstm_weights() -> None:
    # in=2, out=1
    weights = np.arange(12, dtype=np.float32).reshape(3, 4)
    wh, wx = split_lstm_weights(weights)
    np.testing.assert_array_equal(wx, weights[:2].T)
    np.testing.assert_array_equal(wh, weights[2:].T)


def test_peephole_matrix_is_diagonal() -> None:
    np.testing.assert_array_equal(
        peephole_matrix(np.array([1.0, 2.0], dtype=np.float32)),
        np.array([[1.0, 0.0], [0.0, 2.0]], dtype=np.float32),
    )
