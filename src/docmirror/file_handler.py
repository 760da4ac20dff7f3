"""Local filesystem access used when staging mirrored documentation.

The synchronizer talks to the filesystem through the small
``FilesystemWriter`` protocol so tests can observe or fake writes.
``LocalFilesystem`` is the real implementation.  Directory creation is
create-if-absent, which lets several page workers create the same
subdirectory concurrently.
"""

import shutil
from pathlib import Path
from typing import Protocol


class FilesystemWriter(Protocol):
    def is_directory(self, path: Path) -> bool: ...

    def make_directory(self, path: Path, recursive: bool = True) -> None: ...

    def put(self, path: Path, data: bytes) -> int: ...

    def remove_tree(self, path: Path) -> None: ...


# =============================================================================
# Local implementation
# =============================================================================


class LocalFilesystem:
    """``FilesystemWriter`` backed by the real filesystem."""

    def is_directory(self, path: Path) -> bool:
        return Path(path).is_dir()

    def make_directory(self, path: Path, recursive: bool = True) -> None:
        """Create *path* if it does not exist yet.

        Raises:
            OSError: If the directory cannot be created (permissions, a file
                in the way, ...).
        """
        Path(path).mkdir(parents=recursive, exist_ok=True)

    def put(self, path: Path, data: bytes) -> int:
        """Write *data* to *path*, replacing any existing file.

        Returns:
            Number of bytes written.
        """
        Path(path).write_bytes(data)
        return len(data)

    def remove_tree(self, path: Path) -> None:
        """Delete *path* and everything below it, if it exists."""
        if Path(path).exists():
            shutil.rmtree(path)


# =============================================================================
# Path validation
# =============================================================================


def is_within(path: Path, root: Path) -> bool:
    """Return True if *path* resolves to *root* or somewhere below it.

    Used to reject page identifiers such as ``../../etc/passwd`` before
    anything is written.
    """
    resolved = Path(path).resolve()
    base = Path(root).resolve()
    return resolved == base or resolved.is_relative_to(base)
