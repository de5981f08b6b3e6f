"""Packaging of file trees into gzip-compressed tar archives."""

import gzip
import io
import tarfile
from typing import Iterable

from repowatcher.errors import EncodingError
from repowatcher.repository.base import TreeEntry


class TarGzArchiver:
    """Serializes a file tree into a single gzip-compressed tar stream.

    Output is deterministic for identical input ordering: member mtimes and
    the gzip header timestamp are fixed.
    """

    def __init__(self, file_mode: int = 0o644, compresslevel: int = 9) -> None:
        self.file_mode = file_mode
        self.compresslevel = compresslevel

    def package_tree(self, entries: Iterable[TreeEntry]) -> bytes:
        """Package a tree into a compressed archive.

        Args:
            entries: (path, contents) pairs, consumed once

        Returns:
            The gzip payload

        Raises:
            EncodingError: If writing the archive fails. Errors raised by the
                entries iterator itself propagate unchanged.
        """
        buffer = io.BytesIO()
        try:
            with gzip.GzipFile(
                fileobj=buffer, mode="wb", compresslevel=self.compresslevel, mtime=0
            ) as gz:
                with tarfile.open(fileobj=gz, mode="w", format=tarfile.PAX_FORMAT) as tar:
                    for path, contents in entries:
                        self._add_file(tar, path, contents)
        except (tarfile.TarError, OSError, ValueError) as e:
            raise EncodingError(f"Failed to write archive: {e}") from e

        return buffer.getvalue()

    def _add_file(self, tar: tarfile.TarFile, path: str, contents: bytes) -> None:
        info = tarfile.TarInfo(name=path)
        info.size = len(contents)
        info.mode = self.file_mode
        info.mtime = 0
        tar.addfile(info, io.BytesIO(contents))
