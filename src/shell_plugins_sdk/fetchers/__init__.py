from ._dispatcher import DefaultSourceLocker, install_key, lock_source
from ._git import git_dir
from ._http import remote_dir_and_file

__all__ = [
    "DefaultSourceLocker",
    "git_dir",
    "install_key",
    "lock_source",
    "remote_dir_and_file",
]
