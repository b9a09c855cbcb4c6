"""
Release of previously embargoed archives once they are more than one year old.

Since the private part of each archive is stored under a different key ('-e.tgz') than its public part, the same
migration covers every case encountered in the public container:

1) A public object with the same key exists (for example a legacy archive that was converted and embargoed again);
   the private copy is authoritative, so the public object is replaced.
2) No public object with the same key exists; the private copy is simply added next to the public part.

The private copy is never deleted, so an interrupted or repeated migration can always be rerun safely.
"""

import datetime
import enum
import traceback
import uuid

import tqdm

from ._blob_store import BlobStore, iterate_keys
from ._config import EMBARGO_EPOCH_YEAR
from ._embargo_policy import get_default_cutoff_date, is_older_than_cutoff
from ._error_collection import _collect_error
from ._exceptions import BlobStoreError, InvalidDateError
from ._filename_parser import get_day_key_prefix, parse_collection_date
from ._globals import _DEFAULT_EXPERIMENT
from ._metrics import UNEMBARGO_FILES_TOTAL


class MigrationState(enum.Enum):
    IDLE = "idle"
    LISTING_DESTINATION = "listing_destination"
    LISTING_SOURCE = "listing_source"
    COPYING = "copying"
    DONE = "done"
    FAILED = "failed"


def check_whether_unembargo(date: int, today: datetime.date | None = None) -> bool:
    """Return True if the date (YYYYMMDD) is more than one year before today."""
    return is_older_than_cutoff(date=date, cutoff_date=get_default_cutoff_date(today=today))


class UnembargoMigrator:
    def __init__(
        self,
        *,
        blob_store: BlobStore,
        private_container: str,
        public_container: str,
        experiment: str = _DEFAULT_EXPERIMENT,
    ):
        """
        Copy embargoed archives from the private container into the public container.

        Parameters
        ----------
        blob_store : BlobStore
            The object store holding both containers.
        private_container : str
            The container of the embargoed archives; only ever read.
        public_container : str
            The container of the published archives.
        experiment : str, default: "sidestream"
            The record type; the first directory of every object key.
        """
        self.blob_store = blob_store
        self.private_container = private_container
        self.public_container = public_container
        self.experiment = experiment

        self.state = MigrationState.IDLE
        self.error: BlobStoreError | None = None

    def migrate(self, key_prefix: str, task_id: str | None = None) -> list[str]:
        """
        Copy every private object under the prefix into the public container under the same key.

        An existing public object with the same key is deleted first. Copies already made are kept if a later step
        fails; rerunning finishes the rest and overwrites the finished copies with identical content.

        Returns
        -------
        migrated_keys : list of strings
            The keys copied into the public container.

        Raises
        ------
        BlobStoreError
            If any listing, read, write, or delete fails. The migrator is left in the FAILED state.
        """
        self.error = None
        migrated_keys = list()
        try:
            self.state = MigrationState.LISTING_DESTINATION
            existing_public_keys = set(
                iterate_keys(blob_store=self.blob_store, container=self.public_container, prefix=key_prefix)
            )

            self.state = MigrationState.LISTING_SOURCE
            private_keys = list(
                iterate_keys(blob_store=self.blob_store, container=self.private_container, prefix=key_prefix)
            )

            self.state = MigrationState.COPYING
            for private_key in tqdm.tqdm(
                iterable=private_keys,
                total=len(private_keys),
                desc=f"Unembargoing archives under {key_prefix}...",
                position=0,
                leave=True,
            ):
                outcome = "copied"
                if private_key in existing_public_keys:
                    self.blob_store.delete(container=self.public_container, key=private_key)
                    outcome = "replaced"

                content = self.blob_store.get(container=self.private_container, key=private_key)
                self.blob_store.put(container=self.public_container, key=private_key, content=content)

                UNEMBARGO_FILES_TOTAL.labels(outcome=outcome).inc()
                migrated_keys.append(private_key)
        except BlobStoreError as exception:
            self.state = MigrationState.FAILED
            self.error = exception

            message = (
                f"Unembargo of '{key_prefix}' failed after {len(migrated_keys)} copies!\n\n"
                f"{type(exception)}: {exception}\n\n"
                f"{traceback.format_exc()}"
            )
            _collect_error(message=message, error_type="unembargo", task_id=task_id)
            raise

        self.state = MigrationState.DONE

        return migrated_keys

    def unembargo_one_day(self, date: str | int, today: datetime.date | None = None) -> list[str]:
        """
        Migrate all embargoed archives of one day, which must be more than one year old.

        Parameters
        ----------
        date : str or int
            The collection date as 'YYYYMMDD' or 'YYYY/MM/DD'.
        today : datetime.date, optional
            The reference date of the one year check. Defaults to the current UTC date.

        Raises
        ------
        InvalidDateError
            If the date is malformed, before the epoch year, in the future, or not yet one year old.
            Raised before any listing.
        """
        today = today or datetime.datetime.now(tz=datetime.timezone.utc).date()
        collection_date = parse_collection_date(date=date)

        if collection_date.year < EMBARGO_EPOCH_YEAR:
            raise InvalidDateError(f"Date '{date}' is before the first year of collected data ({EMBARGO_EPOCH_YEAR})!")
        if collection_date > today:
            raise InvalidDateError(f"Date '{date}' is in the future!")

        integer_date = int(collection_date.strftime("%Y%m%d"))
        if not check_whether_unembargo(date=integer_date, today=today):
            raise InvalidDateError(f"Date '{date}' is too new, not qualified for unembargo.")

        key_prefix = get_day_key_prefix(collection_date=collection_date, experiment=self.experiment)
        task_id = str(uuid.uuid4())[:5]

        return self.migrate(key_prefix=key_prefix, task_id=task_id)
