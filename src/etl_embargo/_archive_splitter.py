"""
Primary functions for splitting one archive into a public and a private archive.

The strategy is to...

1) Decompress the whole input archive into memory; tar and gzip require member sizes to be known before writing.
2) Iterate the members in their original order, skipping anything that is not a regular file.
3) Classify each member by its base name through the embargo policy.
4) Write a fresh header (name, size, mode, and modification time of the original) and the untouched content into
   whichever of the two output archives the classification selects.

Both outputs are written with a zero gzip timestamp so that the same input always produces the same bytes.
"""

import contextlib
import dataclasses
import gzip
import io
import posixpath
import tarfile
import zlib
from collections.abc import Iterator

from pydantic import Field, validate_call

from ._config import DEFAULT_MAXIMUM_ARCHIVE_SIZE_IN_BYTES
from ._embargo_policy import should_embargo
from ._exceptions import ArchiveSplitError, ArchiveTooLargeError
from ._metrics import EMBARGO_FILES_TOTAL
from ._site_whitelist import SiteWhitelist


@dataclasses.dataclass(frozen=True)
class SplitArchives:
    public_content: bytes
    private_content: bytes
    number_of_public_members: int
    number_of_private_members: int


@validate_call(config=dict(arbitrary_types_allowed=True))
def split_archive(
    *,
    archive_content: bytes,
    whitelist: SiteWhitelist,
    cutoff_date: int,
    maximum_archive_size_in_bytes: int = Field(ge=1, default=DEFAULT_MAXIMUM_ARCHIVE_SIZE_IN_BYTES),
    task_id: str | None = None,
) -> SplitArchives:
    """
    Split a gzipped tar archive into a public and a private gzipped tar archive.

    Parameters
    ----------
    archive_content : bytes
        The full content of the input '.tgz' archive.
    whitelist : SiteWhitelist
        The whitelisted host IP addresses.
    cutoff_date : int
        The date (YYYYMMDD) before which all records are public.
    maximum_archive_size_in_bytes : int, default: 1 GB
        The maximum size of the archive, both compressed and decompressed, that is held in memory.
    task_id : str, optional
        Identifies the invocation in collected errors.

    Raises
    ------
    ArchiveTooLargeError
        If the archive exceeds `maximum_archive_size_in_bytes`.
    ArchiveSplitError
        If the archive cannot be decompressed, read, or re-packaged. No partial output is returned.
    """
    if len(archive_content) > maximum_archive_size_in_bytes:
        raise ArchiveTooLargeError(
            f"Compressed archive of {len(archive_content)} bytes exceeds the maximum of "
            f"{maximum_archive_size_in_bytes} bytes!"
        )

    tar_content = _decompress(archive_content=archive_content, maximum_size_in_bytes=maximum_archive_size_in_bytes)

    public_buffer = io.BytesIO()
    private_buffer = io.BytesIO()
    number_of_public_members = 0
    number_of_private_members = 0
    try:
        with (
            tarfile.open(fileobj=io.BytesIO(tar_content), mode="r:") as input_tar,
            _open_output_archive(buffer=public_buffer) as public_tar,
            _open_output_archive(buffer=private_buffer) as private_tar,
        ):
            for member in input_tar:
                if not member.isreg():
                    continue

                content = input_tar.extractfile(member).read()

                header = tarfile.TarInfo(name=member.name)
                header.size = member.size
                header.mode = member.mode
                header.mtime = member.mtime
                header.type = tarfile.REGTYPE

                file_name = posixpath.basename(member.name)
                if should_embargo(file_name=file_name, whitelist=whitelist, cutoff_date=cutoff_date, task_id=task_id):
                    private_tar.addfile(tarinfo=header, fileobj=io.BytesIO(content))
                    number_of_private_members += 1
                    EMBARGO_FILES_TOTAL.labels(classification="private").inc()
                else:
                    public_tar.addfile(tarinfo=header, fileobj=io.BytesIO(content))
                    number_of_public_members += 1
                    EMBARGO_FILES_TOTAL.labels(classification="public").inc()

            # Past the first header, tarfile reads a corrupt header as the end of the archive
            end_of_members = input_tar.offset
            if tar_content.count(0, end_of_members) != len(tar_content) - end_of_members:
                raise ArchiveSplitError(
                    f"Corrupt tar header at offset {end_of_members}; the rest of the archive cannot be read!"
                )
    except (tarfile.TarError, OSError, EOFError) as exception:
        raise ArchiveSplitError(f"Cannot split archive: {type(exception).__name__}: {exception}") from exception

    return SplitArchives(
        public_content=public_buffer.getvalue(),
        private_content=private_buffer.getvalue(),
        number_of_public_members=number_of_public_members,
        number_of_private_members=number_of_private_members,
    )


def _decompress(*, archive_content: bytes, maximum_size_in_bytes: int) -> bytes:
    try:
        with gzip.GzipFile(fileobj=io.BytesIO(archive_content), mode="rb") as gzip_file:
            tar_content = gzip_file.read(maximum_size_in_bytes + 1)
    except (OSError, EOFError, zlib.error) as exception:
        raise ArchiveSplitError(f"Cannot decompress archive: {type(exception).__name__}: {exception}") from exception

    if len(tar_content) > maximum_size_in_bytes:
        raise ArchiveTooLargeError(f"Decompressed archive exceeds the maximum of {maximum_size_in_bytes} bytes!")

    return tar_content


@contextlib.contextmanager
def _open_output_archive(*, buffer: io.BytesIO) -> Iterator[tarfile.TarFile]:
    with gzip.GzipFile(filename="", mode="wb", fileobj=buffer, mtime=0) as gzip_file:
        with tarfile.open(fileobj=gzip_file, mode="w", format=tarfile.GNU_FORMAT) as tar_file:
            yield tar_file
