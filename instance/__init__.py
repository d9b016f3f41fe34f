"""Instance module: per-worker bootstrap and the shared-config lock."""

from .mutex import with_lock, named_lock, safely_write_file, is_contention, lock_path
from .config_gate import InstanceRequest, prepare_instance_config, instance_settings, read_config
from .program import main, parse_instance_args, run_instance, instance_work_dir

__all__ = [
    "with_lock",
    "named_lock",
    "safely_write_file",
    "is_contention",
    "lock_path",
    "InstanceRequest",
    "prepare_instance_config",
    "instance_settings",
    "read_config",
    "main",
    "parse_instance_args",
    "run_instance",
    "instance_work_dir",
]
