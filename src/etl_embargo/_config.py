import os
import pathlib

ETL_EMBARGO_BASE_FOLDER_PATH = pathlib.Path.home() / ".etl_embargo"
ETL_EMBARGO_BASE_FOLDER_PATH.mkdir(exist_ok=True)
ETL_EMBARGO_ERRORS_FOLDER_PATH = ETL_EMBARGO_BASE_FOLDER_PATH / "errors"

SITE_IP_URL = "https://storage.googleapis.com/operator-mlab-oti/metadata/v0/current/mlab-host-ips.json"
SITE_IP_URL_TEST = "https://storage.googleapis.com/operator-mlab-staging/metadata/v0/current/mlab-host-ips.json"

# Only the production project reads the production site list
PRODUCTION_PROJECT = "mlab-oti"
PROJECT_ENVIRONMENT_VARIABLE = "ETL_EMBARGO_PROJECT"

DEFAULT_MAXIMUM_ARCHIVE_SIZE_IN_BYTES = 10**9
DEFAULT_REQUEST_TIMEOUT_IN_SECONDS = 60.0

# No measurement data exists before this year
EMBARGO_EPOCH_YEAR = 2009


def get_site_ip_url() -> str:
    """Resolve which site IP feed to load based on the deployment project."""
    project = os.environ.get(PROJECT_ENVIRONMENT_VARIABLE, "")
    if project == PRODUCTION_PROJECT:
        return SITE_IP_URL

    return SITE_IP_URL_TEST
