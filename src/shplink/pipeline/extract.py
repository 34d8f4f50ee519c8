"""
ArchiveExtractor - Upload to Raw Datasets

Classifies an upload as a bare shapefile or a ZIP archive and produces one
RawDataset per discovered .shp entry, paired with its attribute table
(.dbf) and code page (.cpg) by leaf base name.
"""

from __future__ import annotations

import io
import logging
import zipfile
import zlib
from typing import Optional

from ..types import EmptyArchive, RawDataset, UnsupportedFormat, UploadedFile
from ..utils import leaf_name, split_extension

logger = logging.getLogger(__name__)

GEOMETRY_EXTENSION = ".shp"
ATTRIBUTE_EXTENSION = ".dbf"
CODEPAGE_EXTENSION = ".cpg"
ARCHIVE_EXTENSION = ".zip"

# Resource-fork folder added by the macOS archiver; never holds real data
IGNORED_PREFIXES = ("__MACOSX/",)


class ArchiveExtractor:
    """
    Discover shapefile datasets inside an upload.

    Extension matching is case-insensitive. Entry order follows the
    archive's central directory, which fixes dataset positions.
    """

    def extract(self, upload: UploadedFile) -> list[RawDataset]:
        """
        Produce the raw datasets contained in ``upload``.

        Args:
            upload: Uploaded file name and content

        Returns:
            RawDataset list in discovery order

        Raises:
            UnsupportedFormat: Extension unrecognized or archive unreadable
            EmptyArchive: Archive holds no .shp entries
        """
        _, extension = split_extension(upload.filename)

        if extension == GEOMETRY_EXTENSION:
            logger.info(f"Processing single shapefile {upload.filename}")
            return [self._bare_dataset(upload)]

        if extension == ARCHIVE_EXTENSION:
            return self._archive_datasets(upload)

        raise UnsupportedFormat(upload.filename)

    def list_entries(self, upload: UploadedFile) -> list[str]:
        """Names of the geometry entries ``extract`` would turn into datasets."""
        _, extension = split_extension(upload.filename)
        if extension == GEOMETRY_EXTENSION:
            return [upload.filename]
        if extension != ARCHIVE_EXTENSION:
            raise UnsupportedFormat(upload.filename)

        with self._open_archive(upload) as archive:
            return self._geometry_entries(self._file_entries(archive))

    def _bare_dataset(self, upload: UploadedFile) -> RawDataset:
        name, _ = split_extension(upload.filename)
        return RawDataset(
            name=name,
            position=0,
            geometry_bytes=upload.content,
            source_path=upload.filename,
        )

    def _archive_datasets(self, upload: UploadedFile) -> list[RawDataset]:
        with self._open_archive(upload) as archive:
            entries = self._file_entries(archive)
            geometry_entries = self._geometry_entries(entries)

            logger.info(f"Found {len(geometry_entries)} shapefile(s) in {upload.filename}: {geometry_entries}")
            if not geometry_entries:
                raise EmptyArchive(upload.filename)

            datasets = []
            for position, entry in enumerate(geometry_entries):
                datasets.append(self._read_dataset(archive, entries, entry, position))
            return datasets

    def _open_archive(self, upload: UploadedFile) -> zipfile.ZipFile:
        try:
            return zipfile.ZipFile(io.BytesIO(upload.content))
        except (zipfile.BadZipFile, zlib.error, OSError, ValueError) as e:
            raise UnsupportedFormat(
                upload.filename, f"{upload.filename} is not a readable ZIP archive: {e}"
            ) from e

    def _file_entries(self, archive: zipfile.ZipFile) -> list[str]:
        return [
            info.filename
            for info in archive.infolist()
            if not info.is_dir() and not info.filename.startswith(IGNORED_PREFIXES)
        ]

    def _geometry_entries(self, entries: list[str]) -> list[str]:
        return [entry for entry in entries if split_extension(entry)[1] == GEOMETRY_EXTENSION]

    def _read_dataset(
        self,
        archive: zipfile.ZipFile,
        entries: list[str],
        entry: str,
        position: int,
    ) -> RawDataset:
        name, _ = split_extension(entry)
        logger.info(f"Extracting {entry}...")

        attribute_entry = find_sibling(entries, entry, ATTRIBUTE_EXTENSION)
        codepage_entry = find_sibling(entries, entry, CODEPAGE_EXTENSION)

        try:
            geometry_bytes = archive.read(entry)
            attribute_bytes = archive.read(attribute_entry) if attribute_entry else None
            encoding = self._read_codepage(archive, codepage_entry) if codepage_entry else None
        except (zipfile.BadZipFile, zlib.error, OSError, RuntimeError, ValueError) as e:
            logger.error(f"Could not extract dataset '{name}' from {entry}: {e}")
            return RawDataset(
                name=name,
                position=position,
                geometry_bytes=b"",
                source_path=entry,
                read_error=str(e),
            )

        if attribute_entry:
            logger.debug(f"Paired {entry} with attribute table {attribute_entry}")
        else:
            logger.warning(f"No attribute table for {entry}; features will have empty properties")

        return RawDataset(
            name=name,
            position=position,
            geometry_bytes=geometry_bytes,
            attribute_bytes=attribute_bytes,
            encoding=encoding,
            source_path=entry,
        )

    def _read_codepage(self, archive: zipfile.ZipFile, entry: str) -> Optional[str]:
        value = archive.read(entry).decode("ascii", errors="ignore").strip()
        return value or None


def find_sibling(entries: list[str], entry: str, extension: str) -> Optional[str]:
    """
    Find the entry sharing ``entry``'s leaf base name with ``extension``.

    Base names compare case-insensitively. An entry in the same directory
    wins; otherwise the first match anywhere in the archive is used.

    Args:
        entries: All file entries of the archive
        entry: Geometry entry whose partner is wanted
        extension: Lowercase extension of the partner, e.g. ".dbf"

    Returns:
        The partner entry name, or None
    """
    base, _ = split_extension(entry)
    directory = entry.replace("\\", "/")[: -len(leaf_name(entry))]

    candidates = [
        candidate for candidate in entries
        if split_extension(candidate)[1] == extension
        and split_extension(candidate)[0].lower() == base.lower()
    ]
    if not candidates:
        return None

    for candidate in candidates:
        if candidate.replace("\\", "/")[: -len(leaf_name(candidate))] == directory:
            return candidate
    return candidates[0]
