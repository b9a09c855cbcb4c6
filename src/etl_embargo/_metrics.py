"""
Prometheus counters for the embargo pipeline.

The counters are registered on the default registry; exposing them (for example through
`prometheus_client.start_http_server`) is left to the process embedding the pipeline.
"""

from prometheus_client import Counter

# Archives that were split and uploaded successfully, e.g. ("sidestream", "Monday")
EMBARGO_SUCCESS_TOTAL = Counter(
    name="etl_embargo_success_total",
    documentation="Number of archives that were processed by the embargo pipeline successfully.",
    labelnames=["experiment", "day_of_week"],
)

EMBARGO_ERROR_TOTAL = Counter(
    name="etl_embargo_error_total",
    documentation="Number of archives that were not processed by the embargo pipeline successfully.",
    labelnames=["experiment", "day_of_week"],
)

EMBARGO_FILES_TOTAL = Counter(
    name="etl_embargo_files_total",
    documentation="Number of archive members classified as public or private.",
    labelnames=["classification"],
)

IP_NORMALIZATION_ERRORS_TOTAL = Counter(
    name="etl_embargo_ip_normalization_errors_total",
    documentation="Number of IP address segments in record filenames that could not be normalized.",
    labelnames=["error_type"],
)

FILENAME_ERRORS_TOTAL = Counter(
    name="etl_embargo_filename_errors_total",
    documentation="Number of record or archive names whose embedded date could not be parsed.",
    labelnames=["error_type"],
)

UNEMBARGO_FILES_TOTAL = Counter(
    name="etl_embargo_unembargo_files_total",
    documentation="Number of embargoed files migrated to the public container.",
    labelnames=["outcome"],
)
