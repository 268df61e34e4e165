"""
nuxfly Utilities

Project discovery and filesystem helpers. Raw OS errors are re-wrapped into
the nuxfly exception hierarchy here so callers only see typed errors.
"""

import json
import os
import shutil
import stat
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from nuxfly.constants import (
    DEFAULT_FILE_MODE,
    NUXFLY_DIR_NAME,
    NUXT_CONFIG_FILES,
    PACKAGE_MANAGER_LOCKFILES,
)
from nuxfly.exceptions import NuxflyError, PermissionDeniedError

PathLike = Union[str, Path]


@contextmanager
def wrap_os_errors(path: PathLike) -> Iterator[None]:
    """Translate FileNotFoundError/PermissionError into nuxfly errors."""
    try:
        yield
    except FileNotFoundError as e:
        raise NuxflyError(f"File not found: {e.filename or path}", exit_code=2) from e
    except PermissionError as e:
        raise PermissionDeniedError(str(e.filename or path)) from e


class ProjectUtils:
    """Utilities for Nuxt project discovery."""

    @staticmethod
    def find_nuxt_config(cwd: PathLike) -> Optional[Path]:
        """
        Find the Nuxt config file in a directory.

        Args:
            cwd: Directory to search

        Returns:
            Path to the first matching nuxt.config.* file, or None
        """
        for filename in NUXT_CONFIG_FILES:
            candidate = Path(cwd) / filename
            if candidate.is_file():
                return candidate
        return None

    @staticmethod
    def is_nuxt_project(cwd: PathLike) -> bool:
        return ProjectUtils.find_nuxt_config(cwd) is not None

    @staticmethod
    def detect_package_manager(cwd: PathLike) -> str:
        """
        Detect package manager from lock files.

        Args:
            cwd: Project root

        Returns:
            One of pnpm, yarn, bun or npm
        """
        for lockfile, manager in PACKAGE_MANAGER_LOCKFILES:
            if (Path(cwd) / lockfile).exists():
                return manager
        return "npm"

    @staticmethod
    def read_package_json(cwd: PathLike) -> Dict:
        """Read the project package.json, returning {} when absent or unreadable."""
        path = Path(cwd) / "package.json"
        if not path.is_file():
            return {}
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}


class FileUtils:
    """Safe file operations with directory creation and typed errors."""

    @staticmethod
    def ensure_nuxfly_dir(cwd: PathLike) -> Path:
        """Create the project .nuxfly directory if needed and return it."""
        nuxfly_dir = Path(cwd) / NUXFLY_DIR_NAME
        with wrap_os_errors(nuxfly_dir):
            nuxfly_dir.mkdir(parents=True, exist_ok=True)
        return nuxfly_dir

    @staticmethod
    def write_file(path: PathLike, content: str, mode: Optional[int] = None) -> Path:
        """
        Write text to a file, creating parent directories.

        Args:
            path: Destination path
            content: Text content
            mode: Optional permission bits (e.g. 0o755 for scripts)

        Returns:
            The written path
        """
        path = Path(path)
        with wrap_os_errors(path):
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
            if mode is not None:
                path.chmod(mode)
        return path

    @staticmethod
    def read_file(path: PathLike) -> str:
        path = Path(path)
        with wrap_os_errors(path):
            return path.read_text(encoding="utf-8")

    @staticmethod
    def copy_file(src: PathLike, dest: PathLike) -> Path:
        """Copy a single file, creating the destination directory."""
        dest = Path(dest)
        with wrap_os_errors(src):
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(src, dest)
        return dest

    @staticmethod
    def file_exists(path: PathLike) -> bool:
        return Path(path).is_file()

    @staticmethod
    def directory_exists(path: PathLike) -> bool:
        return Path(path).is_dir()

    @staticmethod
    def backup_file(path: PathLike) -> Optional[Path]:
        """
        Copy a file to <name>.backup next to it.

        Returns:
            Backup path, or None if the source does not exist
        """
        path = Path(path)
        if not path.is_file():
            return None
        return FileUtils.copy_file(path, path.with_name(path.name + ".backup"))

    @staticmethod
    def restore_from_backup(path: PathLike) -> bool:
        """
        Restore a file from its .backup copy and remove the backup.

        Returns:
            True if a backup was restored
        """
        path = Path(path)
        backup = path.with_name(path.name + ".backup")
        if not backup.is_file():
            return False
        with wrap_os_errors(backup):
            os.replace(backup, path)
        return True

    @staticmethod
    def get_file_mod_time(path: PathLike) -> Optional[float]:
        path = Path(path)
        if not path.exists():
            return None
        return path.stat().st_mtime

    @staticmethod
    def is_newer(path: PathLike, other: PathLike) -> bool:
        """Check if path was modified after other (True if other is missing)."""
        mtime = FileUtils.get_file_mod_time(path)
        other_mtime = FileUtils.get_file_mod_time(other)
        if mtime is None:
            return False
        if other_mtime is None:
            return True
        return mtime > other_mtime

    @staticmethod
    def atomic_write(path: PathLike, content: str) -> Path:
        """
        Write a file via a temporary sibling and an atomic rename.

        Readers never observe a partially written file.
        """
        path = Path(path)
        with wrap_os_errors(path):
            path.parent.mkdir(parents=True, exist_ok=True)
            mode = stat.S_IMODE(path.stat().st_mode) if path.exists() else DEFAULT_FILE_MODE
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(content)
                os.chmod(tmp_name, mode)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        return path

    @staticmethod
    def copy_tree(src: PathLike, dest: PathLike) -> Path:
        """Replace dest with a copy of the src directory tree."""
        src, dest = Path(src), Path(dest)
        with wrap_os_errors(src):
            if dest.exists():
                shutil.rmtree(dest)
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copytree(src, dest)
        return dest

    @staticmethod
    def changed_files(src: PathLike, dest: PathLike) -> List[Path]:
        """
        List files under src that are missing from dest or newer than their copy.

        Args:
            src: Source directory
            dest: Previously copied directory

        Returns:
            Paths relative to src, sorted
        """
        src, dest = Path(src), Path(dest)
        if not src.is_dir():
            return []

        changed = []
        for file_path in src.rglob("*"):
            if not file_path.is_file():
                continue
            relative = file_path.relative_to(src)
            if FileUtils.is_newer(file_path, dest / relative):
                changed.append(relative)
        return sorted(changed)


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance between two strings."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (char_a != char_b),
                )
            )
        previous = current
    return previous[-1]
