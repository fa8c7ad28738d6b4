from enum import Enum

import numpy as np


class DataLayout(Enum):
    NHWC = 'NHWC'
    NCHW = 'NCHW'
    UNKNOWN = 'UNKNOWN'


DATA_FORMAT_TO_LAYOUT = {
    'NHWC': DataLayout.NHWC,
    'channels_last': DataLayout.NHWC,
    'NCHW': DataLayout.NCHW,
    'channels_first': DataLayout.NCHW,
}

# tensorflow.DataType enum names as they appear in TensorProto.dtype
TF_DTYPES_TO_NUMPY_DTYPES = {
    'DT_HALF': np.dtype('float16'),
    'DT_FLOAT': np.dtype('float32'),
    'DT_DOUBLE': np.dtype('float64'),

    'DT_UINT8': np.dtype('uint8'),
    'DT_UINT16': np.dtype('uint16'),
    'DT_UINT32': np.dtype('uint32'),
    'DT_UINT64': np.dtype('uint64'),

    'DT_INT8': np.dtype('int8'),
    'DT_INT16': np.dtype('int16'),
    'DT_INT32': np.dtype('int32'),
    'DT_INT64': np.dtype('int64'),

    'DT_BOOL': np.dtype('bool_'),

    'DT_QUINT8': np.dtype('uint8'),
    'DT_QINT8': np.dtype('int8'),
    'DT_QINT32': np.dtype('int32'),
}

NUMPY_DTYPES_TO_TF_DTYPES = {
    np.dtype('float16'): 'DT_HALF',
    np.dtype('float32'): 'DT_FLOAT',
    np.dtype('float64'): 'DT_DOUBLE',

    np.dtype('uint8'): 'DT_UINT8',
    np.dtype('uint16'): 'DT_UINT16',
    np.dtype('uint32'): 'DT_UINT32',
    np.dtype('uint64'): 'DT_UINT64',

    np.dtype('int8'): 'DT_INT8',
    np.dtype('int16'): 'DT_INT16',
    np.dtype('int32'): 'DT_INT32',
    np.dtype('int64'): 'DT_INT64',

    np.dtype('bool_'): 'DT_BOOL',
}

# Element types accepted for weight blobs and convolution kernels.
BLOB_FLOAT_DTYPES = {'DT_FLOAT', 'DT_HALF', 'DT_DOUBLE'}
KERNEL_FLOAT_DTYPES = {'DT_FLOAT', 'DT_HALF'}
INDEX_DTYPES = {'DT_INT32', 'DT_INT64'}

# TensorFlow activation op -> target layer type, lowered 1:1.
ACTIVATION_LAYER_TYPES = {
    'Abs': 'AbsVal',
    'Tanh': 'TanH',
    'Sigmoid': 'Sigmoid',
    'Relu': 'ReLU',
    'Relu6': 'ReLU6',
    'Elu': 'ELU',
    'Identity': 'Identity',
}

IDENTITY_OPS = {'Identity', 'Dropout'}
