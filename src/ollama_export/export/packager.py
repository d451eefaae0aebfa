"""Archive packaging of the destination tree.

Writes a gzip-compressed tar whose entries are relative to the output
directory (``models/manifests/...``, ``models/blobs/...``). Entries are
written in sorted path order, so packing an unchanged tree twice yields the
same entry order and content. Regular files are streamed into the archive.

Deterministic archives also carry a zero timestamp and no file name in the
gzip header, so packing the same tree twice gives byte-identical output.
"""

from __future__ import annotations

import gzip
import tarfile
from collections.abc import Iterable
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path

from ollama_export.logging_config import get_logger

logger = get_logger(__name__)

# Fixed metadata for deterministic archives
FIXED_MTIME = 0
DIR_MODE = 0o755
FILE_MODE = 0o644

# Subtree of the output directory that is packed
PACKED_SUBTREE = "models"


class PackageError(Exception):
    """Raised when the archive cannot be written."""


@dataclass
class PackResult:
    """Outcome of packing a tree.

    Attributes:
        archive_path: Written archive.
        entries: Archive entry names in write order.
        file_count: Regular files written.
        total_bytes: Sum of regular file sizes.
    """

    archive_path: Path
    entries: list[str]
    file_count: int
    total_bytes: int


def _normalize_tarinfo(info: tarfile.TarInfo) -> tarfile.TarInfo:
    info.uid = 0
    info.gid = 0
    info.uname = ""
    info.gname = ""
    info.mtime = FIXED_MTIME
    info.mode = DIR_MODE if info.isdir() else FILE_MODE
    return info


class Packager:
    """Packs a destination tree into a ``.tar.gz`` archive."""

    def __init__(self, *, deterministic: bool = False, compresslevel: int = 6) -> None:
        self._deterministic = deterministic
        self._compresslevel = compresslevel

    def collect(
        self,
        root: Path,
        *,
        exclude: Path | None = None,
        include: Iterable[Path] | None = None,
    ) -> list[Path]:
        """Paths to pack under ``root/models``, in sorted relative-path order.

        Args:
            root: Output directory.
            exclude: Path to leave out (the archive being written).
            include: Restrict the archive to these files and their parent
                directories. None packs the whole subtree.
        """
        subtree = root / PACKED_SUBTREE
        if include is not None:
            return self._with_parents(root, subtree, include)
        if not subtree.is_dir():
            return []
        excluded = exclude.resolve() if exclude is not None else None
        paths = [subtree]
        paths.extend(p for p in subtree.rglob("*") if excluded is None or p.resolve() != excluded)
        return sorted(paths, key=lambda p: p.relative_to(root).as_posix())

    @staticmethod
    def _with_parents(root: Path, subtree: Path, files: Iterable[Path]) -> list[Path]:
        selected: set[Path] = set()
        for path in files:
            if not path.is_relative_to(subtree):
                msg = f"{path} is outside {subtree}"
                raise PackageError(msg)
            selected.add(path)
            parent = path.parent
            while parent != root and parent not in selected:
                selected.add(parent)
                parent = parent.parent
        return sorted(selected, key=lambda p: p.relative_to(root).as_posix())

    def pack(
        self,
        root: Path,
        archive_path: Path,
        *,
        include: Iterable[Path] | None = None,
    ) -> PackResult:
        """Write the archive.

        Args:
            root: Output directory; archive names are relative to it.
            archive_path: Destination ``.tar.gz`` file.
            include: Files to pack (see collect). None packs everything
                under ``root/models``.

        Returns:
            PackResult describing the archive.

        Raises:
            PackageError: If the tree cannot be read or the archive written.
        """
        root = Path(root)
        entries: list[str] = []
        file_count = 0
        total_bytes = 0

        try:
            paths = self.collect(root, exclude=archive_path, include=include)
            archive_path.parent.mkdir(parents=True, exist_ok=True)
            with ExitStack() as stack:
                tf = self._open_tar(archive_path, stack)
                for path in paths:
                    arcname = path.relative_to(root).as_posix()
                    info = tf.gettarinfo(str(path), arcname=arcname)
                    if self._deterministic:
                        info = _normalize_tarinfo(info)
                    if info.isreg():
                        with path.open("rb") as f:
                            tf.addfile(info, f)
                        file_count += 1
                        total_bytes += info.size
                    else:
                        tf.addfile(info)
                    entries.append(arcname)
        except (OSError, tarfile.TarError) as e:
            msg = f"Failed to write archive {archive_path}: {e}"
            raise PackageError(msg) from e

        logger.info(
            "Archive written: %s (%d files, %d bytes)",
            archive_path,
            file_count,
            total_bytes,
        )
        return PackResult(
            archive_path=archive_path,
            entries=entries,
            file_count=file_count,
            total_bytes=total_bytes,
        )

    def _open_tar(self, archive_path: Path, stack: ExitStack) -> tarfile.TarFile:
        if not self._deterministic:
            return stack.enter_context(
                tarfile.open(
                    archive_path,
                    "w:gz",
                    format=tarfile.GNU_FORMAT,
                    compresslevel=self._compresslevel,
                )
            )
        raw = stack.enter_context(archive_path.open("wb"))
        gz = stack.enter_context(
            gzip.GzipFile(
                filename="",
                mode="wb",
                compresslevel=self._compresslevel,
                fileobj=raw,
                mtime=FIXED_MTIME,
            )
        )
        return stack.enter_context(tarfile.open(fileobj=gz, mode="w", format=tarfile.GNU_FORMAT))
