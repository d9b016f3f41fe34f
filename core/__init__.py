"""Shared plumbing: errors, logging, argument codec."""

from .errors import (
    LauncherError,
    ConfigError,
    InvalidRangeError,
    InvalidDateError,
    UnknownSymbolError,
    EncodingError,
    LockContentionError,
    WorkerLaunchError,
)
from .logger import log, configure_log_file
from .argcodec import (
    encode_arg,
    decode_arg,
    quote_arg,
    build_command_line,
    split_command_line,
)

__all__ = [
    "LauncherError",
    "ConfigError",
    "InvalidRangeError",
    "InvalidDateError",
    "UnknownSymbolError",
    "EncodingError",
    "LockContentionError",
    "WorkerLaunchError",
    "log",
    "configure_log_file",
    "encode_arg",
    "decode_arg",
    "quote_arg",
    "build_command_line",
    "split_command_line",
]
