"""The decision of whether a single record is released publicly or embargoed."""

import datetime

from ._error_collection import _collect_error
from ._filename_parser import parse_date, parse_ip_address
from ._globals import EMBARGO_ON_PARSE_FAILURE, EMBARGO_RECORDS_WITHOUT_IP_ADDRESS, _WEB100_MARKER
from ._metrics import FILENAME_ERRORS_TOTAL
from ._site_whitelist import SiteWhitelist


def get_default_cutoff_date(today: datetime.date | None = None) -> int:
    """
    Return the date exactly one year before today as an integer in YYYYMMDD format.

    Records collected strictly before this date are old enough to be released unconditionally.
    """
    today = today or datetime.datetime.now(tz=datetime.timezone.utc).date()

    return (today.year - 1) * 10000 + today.month * 100 + today.day


def is_older_than_cutoff(date: int, cutoff_date: int) -> bool:
    return date < cutoff_date


def should_embargo(
    *,
    file_name: str,
    whitelist: SiteWhitelist,
    cutoff_date: int,
    task_id: str | None = None,
) -> bool:
    """
    Decide whether a record must be withheld from public release.

    The rule is...

    1) Records that are not web100 snapshots are never embargoed.
    2) Records whose date cannot be parsed are embargoed (fail closed), and the failure is counted.
    3) Records older than the cutoff date are public, whether or not their host is whitelisted.
    4) Records from a whitelisted host are public.
    5) Everything else, including old filename formats that carry no IP address, is embargoed.

    Parameters
    ----------
    file_name : str
        The base name of the record, e.g., '20170225T23:00:00Z_4.34.58.34_0.web100.gz'.
    whitelist : SiteWhitelist
        The whitelisted host IP addresses.
    cutoff_date : int
        The date (YYYYMMDD) before which all records are public.
    task_id : str, optional
        Identifies the invocation in collected errors.
    """
    if _WEB100_MARKER not in file_name:
        return False

    date = parse_date(file_name=file_name)
    if date is None:
        FILENAME_ERRORS_TOTAL.labels(error_type="record_date").inc()

        message = f"Cannot parse the date of record '{file_name}'; defaulting to embargo={EMBARGO_ON_PARSE_FAILURE}."
        _collect_error(message=message, error_type="filename", task_id=task_id)

        return EMBARGO_ON_PARSE_FAILURE

    if is_older_than_cutoff(date=date, cutoff_date=cutoff_date):
        return False

    ip_address = parse_ip_address(file_name=file_name, task_id=task_id)
    if ip_address is None:
        return EMBARGO_RECORDS_WITHOUT_IP_ADDRESS

    return not whitelist.contains(ip_address=ip_address)
