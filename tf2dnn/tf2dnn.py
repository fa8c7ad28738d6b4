#! /usr/bin/env python

import os
import re
__path__ = (os.path.dirname(__file__), )
with open(os.path.join(__path__[0], '__init__.py')) as f:
    init_text = f.read()
    __version__ = re.search(r'__version__\s*=\s*[\'\"](.+?)[\'\"]', init_text).group(1)
import sys
from argparse import ArgumentParser
from typing import List, Optional

from tf2dnn.dnn_builder import export_net_from_tensorflow
from tf2dnn.dnn_builder.constants import DEQUANTIZE_ROUNDING_MODES
from tf2dnn.dnn_builder.errors import ImporterError
from tf2dnn.dnn_builder.ir import GraphDef, NetIR
from tf2dnn.utils.logging import (
    Color,
    error,
    info,
    set_log_level,
)


def convert(
    input_pb_file_path: Optional[str] = '',
    input_pbtxt_file_path: Optional[str] = None,
    net_bin: Optional[GraphDef] = None,
    net_txt: Optional[GraphDef] = None,
    output_folder_path: Optional[str] = 'saved_model',
    output_file_name: Optional[str] = None,
    output_weights: Optional[bool] = False,
    report_op_coverage: Optional[bool] = False,
    allow_generic_ops: Optional[bool] = None,
    remove_identity_ops: Optional[bool] = None,
    dequantize_rounding: Optional[str] = None,
    enabled_preprocess_rule_ids: Optional[List[str]] = None,
    non_verbose: Optional[bool] = False,
    verbosity: Optional[str] = 'info',
) -> NetIR:
    """Convert a frozen TensorFlow graph to an NCHW layer graph.

    Parameters
    ----------
    input_pb_file_path: Optional[str]
        Input frozen GraphDef (.pb) file path.\n
        Either input_pb_file_path or net_bin must be specified.

    input_pbtxt_file_path: Optional[str]
        Optional text GraphDef (.pbtxt) that overrides the topology.\n
        Weights are still taken from the binary graph.

    net_bin: Optional[GraphDef]
        Already loaded binary graph.\n
        If specified, input_pb_file_path is ignored.

    net_txt: Optional[GraphDef]
        Already loaded text override.\n
        If specified, input_pbtxt_file_path is ignored.

    output_folder_path: Optional[str]
        Output folder path.\n
        Default: "saved_model"

    output_file_name: Optional[str]
        Base name of the output files.\n
        Default: the input file name without extension, or "model"

    output_weights: Optional[bool]
        Also write every layer blob to <output_file_name>_weights.npz.

    report_op_coverage: Optional[bool]
        Write <output_file_name>_op_coverage_report.json classifying every node\n
        as builtin, generic or constant. The report is written even when\n
        the conversion fails.

    allow_generic_ops: Optional[bool]
        Lower ops without a rule to a generic layer of the same type.\n
        When False, such ops abort the conversion.\n
        Default: env TF2DNN_ALLOW_GENERIC_OPS or True

    remove_identity_ops: Optional[bool]
        Remove Identity and Dropout nodes before lowering.\n
        Default: env TF2DNN_REMOVE_IDENTITY_OPS or True

    dequantize_rounding: Optional[str]
        Offset rounding of MIN_FIRST Dequantize folding.\n
        Values are "none", "half_up" and "half_even".\n
        Default: env TF2DNN_DEQUANTIZE_ROUNDING or "none"

    enabled_preprocess_rule_ids: Optional[List[str]]
        Preprocess rules to run before lowering, in order.\n
        Default: every registered rule

    non_verbose: Optional[bool]
        Shorthand to specify a verbosity of "error".\n
        Default: False

    verbosity: Optional[str]
        Change the level of information printed.\n
        Values are "debug", "info", "warn", and "error".\n
        Default: "info"

    Returns
    ----------
    net: NetIR
        Converted layer graph
    """

    if verbosity is None:
        verbosity = 'info'
    set_log_level('error' if non_verbose else verbosity)

    if not input_pb_file_path and net_bin is None:
        error(
            'One of input_pb_file_path or net_bin must be specified.'
        )
        sys.exit(1)

    if not output_folder_path:
        output_folder_path = 'saved_model'
    if not output_file_name:
        if input_pb_file_path:
            output_file_name = os.path.splitext(os.path.basename(input_pb_file_path))[0]
        else:
            output_file_name = 'model'

    if net_bin is None or (net_txt is None and input_pbtxt_file_path):
        from tf2dnn.dnn_builder.graph_loader import load_graph_def, load_graph_def_text
        if net_bin is None:
            info(Color.GREEN('Loading GraphDef:') + f' {input_pb_file_path}')
            net_bin = load_graph_def(input_pb_file_path)
        if net_txt is None and input_pbtxt_file_path:
            info(Color.GREEN('Loading text GraphDef:') + f' {input_pbtxt_file_path}')
            net_txt = load_graph_def_text(input_pbtxt_file_path)

    kwargs = {
        'net_bin': net_bin,
        'net_txt': net_txt,
        'output_folder_path': output_folder_path,
        'output_file_name': output_file_name,
        'output_weights': output_weights,
        'report_op_coverage': report_op_coverage,
        'enabled_rule_ids': enabled_preprocess_rule_ids,
    }
    if allow_generic_ops is not None:
        kwargs['allow_generic_ops'] = allow_generic_ops
    if remove_identity_ops is not None:
        kwargs['remove_identity_ops'] = remove_identity_ops
    if dequantize_rounding is not None:
        kwargs['dequantize_rounding'] = dequantize_rounding

    outputs = export_net_from_tensorflow(**kwargs)
    return outputs['net']


def main():
    parser = ArgumentParser()
    iV_group = parser.add_mutually_exclusive_group(required=True)
    iV_group.add_argument(
        '-i',
        '--input_pb_file_path',
        type=str,
        help='Input frozen GraphDef (.pb) file path.'
    )
    iV_group.add_argument(
        '-V',
        '--version',
        action='store_true',
        help='Show version and exit.'
    )
    parser.add_argument(
        '-t',
        '--input_pbtxt_file_path',
        type=str,
        help=\
            'Text GraphDef (.pbtxt) that overrides the topology. \n' +
            'Weights are still read from the binary graph.'
    )
    parser.add_argument(
        '-o',
        '--output_folder_path',
        type=str,
        help=\
            'Output folder path. \n' +
            'Default: "saved_model"'
    )
    parser.add_argument(
        '-on',
        '--output_file_name',
        type=str,
        help=\
            'Base name of the output files. \n' +
            'Default: input file name without extension'
    )
    parser.add_argument(
        '-ow',
        '--output_weights',
        action='store_true',
        help='Output every layer blob to <output_file_name>_weights.npz.'
    )
    parser.add_argument(
        '-roc',
        '--report_op_coverage',
        action='store_true',
        help=\
            'Output <output_file_name>_op_coverage_report.json. \n' +
            'The report is written even when the conversion fails.'
    )
    parser.add_argument(
        '-dgo',
        '--disallow_generic_ops',
        action='store_true',
        help='Abort on ops without a lowering rule instead of emitting a generic layer.'
    )
    parser.add_argument(
        '-kio',
        '--keep_identity_ops',
        action='store_true',
        help='Do not remove Identity and Dropout nodes before lowering.'
    )
    parser.add_argument(
        '-dqr',
        '--dequantize_rounding',
        type=str,
        choices=DEQUANTIZE_ROUNDING_MODES,
        help=\
            'Offset rounding of MIN_FIRST Dequantize folding. \n' +
            'Default: "none"'
    )
    parser.add_argument(
        '-epr',
        '--enabled_preprocess_rule_ids',
        type=str,
        nargs='*',
        help=\
            'Preprocess rules to run before lowering, in order. \n' +
            'Default: every registered rule'
    )
    parser.add_argument(
        '-n',
        '--non_verbose',
        action='store_true',
        help='Shorthand to specify a verbosity of "error".'
    )
    parser.add_argument(
        '-v',
        '--verbosity',
        type=str,
        choices=['debug', 'info', 'warn', 'error'],
        default='info',
        help=\
            'Change the level of information printed. ' +
            'Default: "info"'
    )
    args = parser.parse_args()

    # Print version
    if args.version:
        print(__version__)
        sys.exit(0)

    try:
        convert(
            input_pb_file_path=args.input_pb_file_path,
            input_pbtxt_file_path=args.input_pbtxt_file_path,
            output_folder_path=args.output_folder_path,
            output_file_name=args.output_file_name,
            output_weights=args.output_weights,
            report_op_coverage=args.report_op_coverage,
            allow_generic_ops=False if args.disallow_generic_ops else None,
            remove_identity_ops=False if args.keep_identity_ops else None,
            dequantize_rounding=args.dequantize_rounding,
            enabled_preprocess_rule_ids=args.enabled_preprocess_rule_ids,
            non_verbose=args.non_verbose,
            verbosity=args.verbosity,
        )
    except ImporterError as ex:
        error(str(ex))
        sys.exit(1)


if __name__ == '__main__':
    main()
