import os
from enum import Enum
from typing import Union

__all__ = [
    "Color", "LOG_LEVELS", "debug", "info", "warn", "error",
    "set_log_level", "get_log_level", "node_label", "layer_label",
]

class Color(Enum):
    RED            = '\033[31m'
    GREEN          = '\033[32m'
    YELLOW         = '\033[33m'
    BLUE           = '\033[34m'
    MAGENTA        = '\033[35m'
    CYAN           = '\033[36m'
    BOLD           = '\033[1m'
    REVERSE        = '\033[07m'
    RESET          = '\033[0m'

    def __str__(self):
        return self.value

    def __call__(self, s):
        return str(self) + str(s) + str(Color.RESET)

LOG_LEVELS = {
    'debug': 0,
    'info':  1,
    'warn':  2,
    'error': 3,
}

# TF2DNN_LOG_LEVEL only seeds the level; convert() overrides it.
log_level = LOG_LEVELS.get(
    os.environ.get('TF2DNN_LOG_LEVEL', 'info').strip().lower(),
    LOG_LEVELS['info'],
)

def set_log_level(level: Union[str, int]):
    global log_level
    if isinstance(level, str):
        if level not in LOG_LEVELS:
            raise ValueError(
                f'log level must be one of {sorted(LOG_LEVELS, key=LOG_LEVELS.get)}. level={level}'
            )
        log_level = LOG_LEVELS[level]
    else:
        log_level = int(level)

def get_log_level():
    return log_level

def node_label(name: str, op: str) -> str:
    return f'{Color.MAGENTA}tf_op_type{Color.RESET}: {op} {Color.MAGENTA}tf_op_name{Color.RESET}: {name}'

def layer_label(layer_id: int, layer_type: str) -> str:
    return f'{Color.CYAN}layer_type{Color.RESET}: {layer_type} {Color.CYAN}layer_id{Color.RESET}: {layer_id}'

def _enabled(level: str) -> bool:
    return log_level <= LOG_LEVELS[level]

def debug(*args):
    if _enabled('debug'):
        print(*args)

def info(*args):
    if _enabled('info'):
        print(*args)

def warn(*args, prefix=True):
    if not _enabled('warn'):
        return
    if prefix and any(args):
        print(Color.YELLOW('WARNING:'), *args)
    else:
        print(*args)

def error(*args, prefix=True):
    if not _enabled('error'):
        return
    if prefix and any(args):
        print(Color.RED('ERROR:'), *args)
    else:
        print(*args)
