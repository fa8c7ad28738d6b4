from __future__ import annotations

from typing import List, Tuple

import numpy as np

from tf2dnn.dnn_builder.errors import (
    ShapeMismatch,
    UnsupportedConfiguration,
    UnsupportedTensorType,
)
from tf2dnn.dnn_builder.ir import TensorValue
from tf2dnn.utils.enums import BLOB_FLOAT_DTYPES, INDEX_DTYPES, KERNEL_FLOAT_DTYPES


def _flat_payload(tensor: TensorValue, expected: int) -> np.ndarray:
    flat = np.asarray(tensor.data).reshape(-1)
    if int(flat.size) != int(expected):
        raise ShapeMismatch(
            f"Tensor payload has {flat.size} elements, shape {tensor.shape} needs {expected}."
        )
    return flat


def _nhwc_to_nchw_indices(shape: List[int]) -> np.ndarray:
    n, h, w, c = [int(v) for v in shape]
    i_n, i_c, i_h, i_w = np.meshgrid(
        np.arange(n), np.arange(c), np.arange(h), np.arange(w), indexing="ij"
    )
    return (c * h * w * i_n + i_c + c * w * i_h + c * i_w).reshape(-1)


def _hwio_to_oihw_indices(shape: List[int]) -> np.ndarray:
    h, w, i, o = [int(v) for v in shape]
    i_o, i_i, i_h, i_w = np.meshgrid(
        np.arange(o), np.arange(i), np.arange(h), np.arange(w), indexing="ij"
    )
    return (o * i * w * i_h + o * i * i_w + o * i_i + i_o).reshape(-1)


def tensor_values(tensor: TensorValue) -> np.ndarray:
    return _flat_payload(tensor, tensor.numel)


def int_values(tensor: TensorValue) -> List[int]:
    if tensor.dtype not in INDEX_DTYPES:
        raise UnsupportedConfiguration(
            f"Expected an integer index tensor, got dtype={tensor.dtype}"
        )
    return [int(v) for v in tensor_values(tensor).tolist()]


def blob_from_tensor(tensor: TensorValue) -> np.ndarray:
    """Float32 weight blob; rank 4 tensors are reordered NHWC -> NCHW."""
    if tensor.dtype not in BLOB_FLOAT_DTYPES:
        raise UnsupportedTensorType(f"Tensor's data type is not supported: {tensor.dtype}")
    rank = len(tensor.shape)
    if rank > 4:
        raise UnsupportedConfiguration(f"Blobs of rank {rank} are not supported.")
    flat = tensor_values(tensor).astype(np.float32)
    if rank == 0:
        return flat.reshape([1])
    if rank == 4:
        n, h, w, c = [int(v) for v in tensor.shape]
        return flat[_nhwc_to_nchw_indices(tensor.shape)].reshape([n, c, h, w])
    return flat.reshape([int(v) for v in tensor.shape])


def kernel_from_tensor(tensor: TensorValue) -> np.ndarray:
    """Convolution kernel HWIO -> OIHW."""
    if tensor.dtype not in KERNEL_FLOAT_DTYPES:
        raise UnsupportedTensorType(f"Kernel data type is not supported: {tensor.dtype}")
    if len(tensor.shape) != 4:
        raise UnsupportedConfiguration(
            f"Convolution kernel must be 4D (HWIO). shape={tensor.shape}"
        )
    h, w, i, o = [int(v) for v in tensor.shape]
    flat = tensor_values(tensor).astype(np.float32)
    return flat[_hwio_to_oihw_indices(tensor.shape)].reshape([o, i, h, w])


def kernel_oihw_to_hwio(kernel: np.ndarray) -> np.ndarray:
    kernel = np.asarray(kernel, dtype=np.float32)
    if kernel.ndim != 4:
        raise UnsupportedConfiguration(f"Kernel must be 4D (OIHW). shape={list(kernel.shape)}")
    o, i, h, w = [int(v) for v in kernel.shape]
    hwio = np.empty([h * w * i * o], dtype=np.float32)
    hwio[_hwio_to_oihw_indices([h, w, i, o])] = kernel.reshape(-1)
    return hwio.reshape([h, w, i, o])


def interleave_depthwise_kernel(kernel: np.ndarray) -> np.ndarray:
    """(multiplier, in_ch, H, W) -> (in_ch * multiplier, 1, H, W).

    Output channel ``c * multiplier + m`` takes filter ``m`` of input channel ``c``.
    """
    kernel = np.asarray(kernel, dtype=np.float32)
    multiplier, in_ch, height, width = [int(v) for v in kernel.shape]
    dst = np.empty([in_ch * multiplier, 1, height, width], dtype=np.float32)
    for m in range(multiplier):
        for c in range(in_ch):
            dst[c * multiplier + m, 0] = kernel[m, c]
    return dst


def matmul_weights(blob: np.ndarray, kernel_index: int) -> np.ndarray:
    """InnerProduct weights (num_output, K); a constant second operand (x*W) is transposed."""
    blob = np.asarray(blob, dtype=np.float32)
    if int(kernel_index) == 1:
        if blob.ndim != 2:
            raise UnsupportedConfiguration(
                f"MatMul weights must be 2D. shape={list(blob.shape)}"
            )
        return np.ascontiguousarray(blob.T)
    return blob


def reorder_lstm_gates(weights: np.ndarray) -> np.ndarray:
    """Gate blocks along the last axis, IGFO -> IFOG."""
    weights = np.array(weights, dtype=np.float32, copy=True)
    cols = int(weights.shape[-1])
    if cols % 4 != 0:
        raise ShapeMismatch(f"LSTM gate axis must be divisible by 4. size={cols}")
    width = cols // 4
    blocks = [weights[..., g * width:(g + 1) * width].copy() for g in range(4)]
    # swap(1, 2) then swap(2, 3)
    blocks[1], blocks[2] = blocks[2], blocks[1]
    blocks[2], blocks[3] = blocks[3], blocks[2]
    return np.concatenate(blocks, axis=-1)


def split_lstm_weights(weights: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Combined [x; h] kernel (in + out, 4 * out) -> (Wh, Wx), both transposed."""
    weights = np.asarray(weights, dtype=np.float32)
    if weights.ndim != 2:
        raise UnsupportedConfiguration(f"LSTM kernel must be 2D. shape={list(weights.shape)}")
    out_size = int(weights.shape[1]) // 4
    rows = int(weights.shape[0])
    if rows < out_size:
        raise ShapeMismatch(
            f"LSTM kernel has {rows} rows, needs at least {out_size} recurrent rows."
        )
    wx = np.ascontiguousarray(weights[:rows - out_size].T)
    wh = np.ascontiguousarray(weights[rows - out_size:].T)
    return wh, wx


def peephole_matrix(values: np.ndarray) -> np.ndarray:
    return np.diag(np.asarray(values, dtype=np.float32).reshape(-1))
