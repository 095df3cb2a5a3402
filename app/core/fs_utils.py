import os
from pathlib import Path


def ensure_parent_dir(path: Path | str) -> None:
    """
    Ensure the parent directory of a given file path exists.
    Example:
      ensure_parent_dir("/tmp/my/cache/unifier.db")
    """
    ensure_dir(os.path.dirname(path))


def ensure_dir(directory: str) -> None:
    """
    Ensure a directory exists. If it doesn't, create it.
    Example:
      ensure_dir("/tmp/my/cache")
    """
    if directory and not os.path.exists(directory):
        os.makedirs(directory, exist_ok=True)
