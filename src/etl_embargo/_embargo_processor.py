"""Primary functions for embargoing all archives of one day, or a single archive, between object store containers."""

import dataclasses
import traceback
import uuid

import tqdm
from pydantic import Field, validate_call

from ._archive_splitter import split_archive
from ._blob_store import BlobStore, iterate_keys
from ._config import DEFAULT_MAXIMUM_ARCHIVE_SIZE_IN_BYTES
from ._embargo_policy import get_default_cutoff_date
from ._error_collection import _collect_error
from ._exceptions import ArchiveSplitError, EmbargoBatchError, WhitelistLoadError
from ._filename_parser import (
    get_day_key_prefix,
    get_day_of_week,
    get_embargoed_object_key,
    parse_collection_date,
)
from ._globals import _ARCHIVE_EXTENSION, _DEFAULT_EXPERIMENT, _UNKNOWN_DAY_OF_WEEK
from ._metrics import EMBARGO_ERROR_TOTAL, EMBARGO_SUCCESS_TOTAL, FILENAME_ERRORS_TOTAL
from ._site_whitelist import SiteWhitelist


@dataclasses.dataclass
class EmbargoDaySummary:
    key_prefix: str
    cutoff_date: int
    processed_object_keys: list[str] = dataclasses.field(default_factory=list)
    failed_object_keys: list[str] = dataclasses.field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.failed_object_keys) == 0


class EmbargoProcessor:
    @validate_call(config=dict(arbitrary_types_allowed=True))
    def __init__(
        self,
        *,
        blob_store: BlobStore,
        source_container: str,
        private_container: str,
        public_container: str,
        whitelist: SiteWhitelist,
        experiment: str = _DEFAULT_EXPERIMENT,
        maximum_archive_size_in_bytes: int = Field(ge=1, default=DEFAULT_MAXIMUM_ARCHIVE_SIZE_IN_BYTES),
    ):
        """
        Split archives from a source container into a public and a private container.

        Parameters
        ----------
        blob_store : BlobStore
            The object store holding all three containers.
        source_container : str
            The container of the incoming archives. It is only ever read.
        private_container : str
            The container receiving the embargoed part of each archive, under the '-e.tgz' key.
        public_container : str
            The container receiving the public part of each archive, under the original key.
        whitelist : SiteWhitelist
            The whitelisted host IP addresses. Must not be empty.
        experiment : str, default: "sidestream"
            The record type; both the first directory of every object key and a required substring of it.
        maximum_archive_size_in_bytes : int, default: 1 GB
            The maximum size of one archive held in memory.
        """
        if len(whitelist) == 0:
            raise WhitelistLoadError("The whitelist is empty; load it before embargoing any data!")

        self.blob_store = blob_store
        self.source_container = source_container
        self.private_container = private_container
        self.public_container = public_container
        self.whitelist = whitelist
        self.experiment = experiment
        self.maximum_archive_size_in_bytes = maximum_archive_size_in_bytes

    def is_embargo_candidate(self, object_key: str) -> bool:
        return self.experiment in object_key and _ARCHIVE_EXTENSION in object_key

    def embargo_one_archive(self, object_key: str, cutoff_date: int, task_id: str | None = None) -> None:
        """
        Download one archive, split it, and upload the public and private parts.

        Nothing is uploaded unless the split succeeds.

        Raises
        ------
        ArchiveSplitError
            If the archive cannot be split.
        BlobStoreError
            If the download or either upload fails.
        """
        try:
            day_of_week = get_day_of_week(object_key=object_key)
        except ValueError:
            FILENAME_ERRORS_TOTAL.labels(error_type="archive_date").inc()
            day_of_week = _UNKNOWN_DAY_OF_WEEK

        try:
            archive_content = self.blob_store.get(container=self.source_container, key=object_key)
            split_archives = split_archive(
                archive_content=archive_content,
                whitelist=self.whitelist,
                cutoff_date=cutoff_date,
                maximum_archive_size_in_bytes=self.maximum_archive_size_in_bytes,
                task_id=task_id,
            )

            self.blob_store.put(
                container=self.public_container, key=object_key, content=split_archives.public_content
            )
            self.blob_store.put(
                container=self.private_container,
                key=get_embargoed_object_key(object_key=object_key),
                content=split_archives.private_content,
            )
        except Exception:
            EMBARGO_ERROR_TOTAL.labels(experiment=self.experiment, day_of_week=day_of_week).inc()
            raise

        EMBARGO_SUCCESS_TOTAL.labels(experiment=self.experiment, day_of_week=day_of_week).inc()

    def embargo_one_day(self, date: str | int, cutoff_date: int | None = None) -> EmbargoDaySummary:
        """
        Embargo every archive of one day in the source container.

        The batch is not transactional. An archive that cannot be split is skipped and reported, and the rest of
        the day is still processed; an object store failure stops the enumeration. Outputs already written are kept
        in both cases, and rerunning the same day is the recovery path since the outputs are deterministic.

        Parameters
        ----------
        date : str or int
            The collection date as 'YYYYMMDD' or 'YYYY/MM/DD'.
        cutoff_date : int, optional
            The date (YYYYMMDD) before which all records are public. Defaults to exactly one year ago.

        Raises
        ------
        InvalidDateError
            If the date is malformed; raised before any listing.
        BlobStoreError
            If listing, downloading, or uploading fails.
        EmbargoBatchError
            If one or more archives could not be split; carries the summary of the batch.
        """
        collection_date = parse_collection_date(date=date)
        if cutoff_date is None:
            cutoff_date = get_default_cutoff_date()
        key_prefix = get_day_key_prefix(collection_date=collection_date, experiment=self.experiment)

        task_id = str(uuid.uuid4())[:5]
        summary = EmbargoDaySummary(key_prefix=key_prefix, cutoff_date=cutoff_date)

        object_keys = [
            object_key
            for object_key in iterate_keys(
                blob_store=self.blob_store, container=self.source_container, prefix=key_prefix
            )
            if self.is_embargo_candidate(object_key=object_key)
        ]
        for object_key in tqdm.tqdm(
            iterable=object_keys,
            total=len(object_keys),
            desc=f"Embargoing archives under {key_prefix}...",
            position=0,
            leave=True,
            smoothing=0,
        ):
            try:
                self.embargo_one_archive(object_key=object_key, cutoff_date=cutoff_date, task_id=task_id)
            except ArchiveSplitError as exception:
                message = (
                    f"Embargo of archive '{object_key}' failed!\n\n"
                    f"{type(exception)}: {exception}\n\n"
                    f"{traceback.format_exc()}"
                )
                _collect_error(message=message, error_type="split", task_id=task_id)

                summary.failed_object_keys.append(object_key)
                continue

            summary.processed_object_keys.append(object_key)

        if not summary.success:
            raise EmbargoBatchError(
                f"{len(summary.failed_object_keys)} of {len(object_keys)} archives under '{key_prefix}' could not be "
                f"embargoed: {summary.failed_object_keys}",
                summary=summary,
            )

        return summary

    def embargo_single_file(self, object_key: str, cutoff_date: int | None = None) -> None:
        """
        Embargo one archive of the source container.

        Raises
        ------
        ValueError
            If the object key is not an archive of the configured experiment.
        """
        if not self.is_embargo_candidate(object_key=object_key):
            raise ValueError(f"Object key '{object_key}' is not a proper {self.experiment} archive!")

        if cutoff_date is None:
            cutoff_date = get_default_cutoff_date()
        self.embargo_one_archive(object_key=object_key, cutoff_date=cutoff_date)
