"""
ETL embargo
===========

Withholding of recent measurement records from public release.

Each archive of a day bundles many small per-host records. Every record that is less than one year old, and that was
not produced by a whitelisted host, is split into a private archive; everything else stays in the public archive.
Once the private archives are more than one year old, they are migrated into the public container.

The main pieces are...

- A `SiteWhitelist` of approved host IP addresses, loaded from the public site IP feed or a local file.
- The `should_embargo` policy, deciding for a single record.
- The `split_archive` engine, re-packaging one archive into a public and a private archive.
- The `EmbargoProcessor`, running the split over all archives of one day between object store containers.
- The `UnembargoMigrator`, releasing the private archives of one day after the embargo period.
"""

from ._config import ETL_EMBARGO_BASE_FOLDER_PATH
from ._exceptions import (
    ArchiveSplitError,
    ArchiveTooLargeError,
    BlobStoreError,
    EmbargoBatchError,
    EmbargoError,
    InvalidDateError,
    WhitelistLoadError,
)
from ._filename_parser import (
    IPAddressNormalizationError,
    get_day_of_week,
    get_embargoed_object_key,
    normalize_ip_address,
    parse_date,
    parse_ip_address,
)
from ._site_whitelist import Site, SiteWhitelist, parse_site_ip_json
from ._embargo_policy import get_default_cutoff_date, should_embargo
from ._archive_splitter import SplitArchives, split_archive
from ._blob_store import BlobStore, InMemoryBlobStore, S3BlobStore, iterate_keys
from ._embargo_processor import EmbargoDaySummary, EmbargoProcessor
from ._unembargo import MigrationState, UnembargoMigrator, check_whether_unembargo

__all__ = [
    "ETL_EMBARGO_BASE_FOLDER_PATH",
    "EmbargoError",
    "BlobStoreError",
    "WhitelistLoadError",
    "ArchiveSplitError",
    "ArchiveTooLargeError",
    "InvalidDateError",
    "EmbargoBatchError",
    "IPAddressNormalizationError",
    "get_day_of_week",
    "get_embargoed_object_key",
    "normalize_ip_address",
    "parse_date",
    "parse_ip_address",
    "Site",
    "SiteWhitelist",
    "parse_site_ip_json",
    "get_default_cutoff_date",
    "should_embargo",
    "SplitArchives",
    "split_archive",
    "BlobStore",
    "InMemoryBlobStore",
    "S3BlobStore",
    "iterate_keys",
    "EmbargoDaySummary",
    "EmbargoProcessor",
    "MigrationState",
    "UnembargoMigrator",
    "check_whether_unembargo",
]
