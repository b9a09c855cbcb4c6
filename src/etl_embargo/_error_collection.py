import datetime
import importlib.metadata
import pathlib

from ._config import ETL_EMBARGO_ERRORS_FOLDER_PATH


def get_error_collection_file_path(error_type: str, task_id: str | None = None) -> pathlib.Path:
    """
    Return the file that errors of one type (and optionally one task) are collected into today.

    The name is 'v<package version>_<yymmdd>_<error type>_errors[_<task id>].txt', so that reports of different
    releases, days, and batch runs never mix.
    """
    try:
        etl_embargo_version = importlib.metadata.version(distribution_name="etl_embargo")
    except importlib.metadata.PackageNotFoundError:
        etl_embargo_version = "unknown"
    date = datetime.datetime.now(tz=datetime.timezone.utc).strftime("%y%m%d")

    task_suffix = f"_{task_id}" if task_id is not None else ""
    return ETL_EMBARGO_ERRORS_FOLDER_PATH / f"v{etl_embargo_version}_{date}_{error_type}_errors{task_suffix}.txt"


def _collect_error(message: str, error_type: str, task_id: str | None = None) -> None:
    """
    Append an error report to the collection file of its type, for reviewing after a batch has finished.

    Collected errors are never fatal; they record input the pipeline tolerated (usually by embargoing it).

    Parameters
    ----------
    message : str
        The error message to be collected.
        Each entry is prefixed with the UTC time it was collected and separated from the next by empty lines.
    error_type : str
        The kind of error, used as a tag in the file name.
        One of "filename", "ip_normalization", "whitelist", "split", or "unembargo".
    task_id : str or None, optional
        The short identifier of the batch run that hit the error.
    """
    ETL_EMBARGO_ERRORS_FOLDER_PATH.mkdir(exist_ok=True)
    error_collection_file_path = get_error_collection_file_path(error_type=error_type, task_id=task_id)

    timestamp = datetime.datetime.now(tz=datetime.timezone.utc).isoformat(timespec="seconds")
    with open(file=error_collection_file_path, mode="a") as io:
        io.write(f"[{timestamp}] {message}\n\n\n")
