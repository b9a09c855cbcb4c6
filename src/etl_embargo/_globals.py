import re

_DEFAULT_EXPERIMENT = "sidestream"
_WEB100_MARKER = "web100"

_ARCHIVE_EXTENSION = ".tgz"
_EMBARGOED_ARCHIVE_EXTENSION = "-e.tgz"

# Sites whose hostname contains this marker are hosted by a third party and are never whitelisted
_EXCLUDED_HOSTNAME_MARKER = "mlab4"

_UNKNOWN_DAY_OF_WEEK = "Unknown"

# Fail closed: when the date of a record cannot be read, it stays private
EMBARGO_ON_PARSE_FAILURE = True

# Old filename formats carry no IP address; such records are treated as not whitelisted
EMBARGO_RECORDS_WITHOUT_IP_ADDRESS = True

_DATE_REGEX = re.compile(pattern=r"^([0-9]{4})/?([0-9]{2})/?([0-9]{2})$")
