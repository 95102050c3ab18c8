"""Filesystem helpers for golden-repo-sync."""

import logging
import os
import shutil
import sys
import tempfile
from contextlib import contextmanager
from typing import Iterator

from rich.console import Console

from goldenrepo.constants import PRIVATE_KEY_MODE


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def set_permissions(self, path: str, mode: int):
        if sys.platform == "win32":
            return

        try:
            os.chmod(path, mode)
        except Exception as exc:
            self.logger.warning("Could not set permissions on %s: %s", path, exc)

    @contextmanager
    def private_temp_file(self, content: str, prefix: str = "private_key_", suffix: str = ".pem") -> Iterator[str]:
        """Writes ``content`` to an owner-only temp file, removed on exit."""
        fd, path = tempfile.mkstemp(prefix=prefix, suffix=suffix)
        try:
            self.set_permissions(path, PRIVATE_KEY_MODE)
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                file_obj.write(content)
            yield path
        finally:
            try:
                os.remove(path)
                self.logger.debug("Removed temporary file: %s", path)
            except FileNotFoundError:
                pass

    def cleanup_dir(self, path: str):
        if os.path.exists(path):
            try:
                shutil.rmtree(path)
                self.logger.debug("Removed directory: %s", path)
            except Exception as exc:
                message = f"Warning: Could not remove {path}: {exc}"
                self.console.print(f"[yellow]{message}[/yellow]")
                self.logger.warning(message)
