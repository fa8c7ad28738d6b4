from tf2dnn.tf2dnn import convert, main

__version__ = '0.1.0'
