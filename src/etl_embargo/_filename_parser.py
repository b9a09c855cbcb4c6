"""
Extraction of the metadata encoded in record filenames and archive object keys.

A record filename looks like '20170315T01:00:00Z_173.205.3.39_0.web100' where...

1) The first 8 characters are the collection date (YYYYMMDD).
2) The segment between the first and the last underscore is the IP address of the host that produced the record.
   Older formats (e.g., '20170225T23:00:00Z_ALL0.web100.gz') carry no IP address at all.

An archive object key looks like 'sidestream/2017/05/16/20170516T000000Z-mlab1-atl06-sidestream-0000.tgz'.
"""

import datetime
import ipaddress

from ._error_collection import _collect_error
from ._exceptions import InvalidDateError
from ._globals import _ARCHIVE_EXTENSION, _DATE_REGEX, _DEFAULT_EXPERIMENT, _EMBARGOED_ARCHIVE_EXTENSION
from ._metrics import IP_NORMALIZATION_ERRORS_TOTAL

_DAYS_OF_WEEK = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class IPAddressNormalizationError(ValueError):
    """The IP address segment of a record filename is not a valid IPv4 or IPv6 address."""

    def __init__(self, message: str, error_type: str):
        super().__init__(message)
        self.error_type = error_type


def normalize_ip_address(ip_address: str) -> str:
    """
    Return the canonical string form of an IPv4 or IPv6 address.

    IPv6 addresses in record filenames are not always written in the compressed form used by the site list.
    Groups may be zero-padded, upper case, uncompressed, or delimited by '-' instead of ':' since some producers
    avoid colons in filenames. All of these are reduced to the compressed lower case form.

    Raises
    ------
    IPAddressNormalizationError
        If the string cannot be interpreted as an IP address.
    """
    candidate = ip_address.strip().lower()
    if candidate == "":
        raise IPAddressNormalizationError("Empty IP address segment!", error_type="empty")

    if ":" not in candidate and "." not in candidate and "-" in candidate:
        candidate = candidate.replace("-", ":")

    try:
        return str(ipaddress.ip_address(address=candidate))
    except ValueError as exception:
        error_type = "ipv6" if ":" in candidate else "ipv4"
        raise IPAddressNormalizationError(
            f"Cannot normalize IP address segment '{ip_address}': {exception}", error_type=error_type
        ) from exception


def parse_ip_address(file_name: str, task_id: str | None = None) -> str | None:
    """
    Parse the filename of a record and return the normalized IP address it was produced by.

    Returns None for old filename formats which do not carry an IP address, and for IP segments that cannot be
    normalized. The latter case points to a bug in the upstream filename format, so it is counted and collected.
    """
    ip_address_start = file_name.find("_")
    ip_address_end = file_name.rfind("_")
    if ip_address_start < 0 or ip_address_start >= ip_address_end:
        return None

    raw_ip_address = file_name[ip_address_start + 1 : ip_address_end]
    try:
        return normalize_ip_address(ip_address=raw_ip_address)
    except IPAddressNormalizationError as exception:
        IP_NORMALIZATION_ERRORS_TOTAL.labels(error_type=exception.error_type).inc()

        message = f"Error normalizing the IP address of record '{file_name}'.\n\n{exception}"
        _collect_error(message=message, error_type="ip_normalization", task_id=task_id)

        return None


def parse_date(file_name: str) -> int | None:
    """Parse the leading YYYYMMDD of a record filename, or return None if it is missing or malformed."""
    date_string = file_name[:8]
    if len(date_string) != 8 or not (date_string.isascii() and date_string.isdigit()):
        return None

    return int(date_string)


def get_day_of_week(object_key: str) -> str:
    """
    Return the day of the week that an archive was collected on.

    For an object key like 'sidestream/2017/05/16/20170516T000000Z-mlab1-atl06-sidestream-0000.tgz'
    return 'Tuesday' for the date '2017/05/16'.

    Raises
    ------
    ValueError
        If the object key is too short or the date segment cannot be parsed.
    """
    record_type_end = object_key.find("/")
    date_segment = object_key[record_type_end + 1 : record_type_end + 11]
    if record_type_end < 0 or len(date_segment) != 10:
        raise ValueError(f"Object key '{object_key}' does not contain a date segment!")

    collection_date = datetime.datetime.strptime(date_segment, "%Y/%m/%d")

    return _DAYS_OF_WEEK[collection_date.weekday()]


def parse_collection_date(date: str | int) -> datetime.date:
    """
    Parse a collection date given as 'YYYYMMDD', 'YYYY/MM/DD', or the integer YYYYMMDD.

    Raises
    ------
    InvalidDateError
        If the date is malformed or is not a real calendar date.
    """
    match = _DATE_REGEX.match(str(date).strip())
    if match is None:
        raise InvalidDateError(f"Date '{date}' is not in the format YYYYMMDD or YYYY/MM/DD!")

    year, month, day = (int(group) for group in match.groups())
    try:
        return datetime.date(year=year, month=month, day=day)
    except ValueError as exception:
        raise InvalidDateError(f"Date '{date}' is not a valid calendar date: {exception}") from exception


def get_day_key_prefix(collection_date: datetime.date, experiment: str = _DEFAULT_EXPERIMENT) -> str:
    """Return the key prefix of all archives of one day, e.g., 'sidestream/2017/05/16'."""
    return f"{experiment}/{collection_date.strftime('%Y/%m/%d')}"


def get_embargoed_object_key(object_key: str) -> str:
    """Return the key of the private counterpart of an archive, e.g., '...-0000.tgz' becomes '...-0000-e.tgz'."""
    return object_key.replace(_ARCHIVE_EXTENSION, _EMBARGOED_ARCHIVE_EXTENSION)
