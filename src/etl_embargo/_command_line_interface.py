"""Call the embargo pipeline from the command line."""

import click

from ._blob_store import S3BlobStore
from ._embargo_policy import get_default_cutoff_date, should_embargo
from ._embargo_processor import EmbargoProcessor
from ._exceptions import EmbargoError
from ._site_whitelist import SiteWhitelist
from ._unembargo import UnembargoMigrator


def _load_whitelist(whitelist_file_path: str | None) -> SiteWhitelist:
    whitelist = SiteWhitelist()
    if whitelist_file_path is not None:
        whitelist.load_from_file(file_path=whitelist_file_path)
    else:
        whitelist.load_from_url()

    return whitelist


@click.command(name="embargo_one_day")
@click.option(
    "--date",
    help="The collection date of the archives to embargo, as YYYYMMDD or YYYY/MM/DD.",
    required=True,
    type=str,
)
@click.option(
    "--cutoff_date",
    help="Records collected before this date (YYYYMMDD) are always public. Defaults to exactly one year ago.",
    required=False,
    type=click.IntRange(min=0),
    default=None,
)
@click.option(
    "--source_bucket",
    help="The bucket containing the incoming archives.",
    required=True,
    type=str,
    envvar="ETL_EMBARGO_SOURCE_BUCKET",
)
@click.option(
    "--private_bucket",
    help="The bucket receiving the embargoed part of each archive.",
    required=True,
    type=str,
    envvar="ETL_EMBARGO_PRIVATE_BUCKET",
)
@click.option(
    "--public_bucket",
    help="The bucket receiving the public part of each archive.",
    required=True,
    type=str,
    envvar="ETL_EMBARGO_PUBLIC_BUCKET",
)
@click.option(
    "--whitelist_file_path",
    help="A local file listing one whitelisted IP address per line. Defaults to the site IP feed of the project.",
    required=False,
    type=click.Path(exists=True, dir_okay=False),
    default=None,
)
@click.option(
    "--endpoint_url",
    help="The endpoint of the S3 compatible object store.",
    required=False,
    type=str,
    default=None,
    envvar="ETL_EMBARGO_ENDPOINT_URL",
)
@click.option(
    "--maximum_archive_size_in_mb",
    help="The maximum size (in MB) of a single archive held in memory.",
    required=False,
    type=click.IntRange(min=1),
    default=1_000,
)
def _embargo_one_day_cli(
    date: str,
    cutoff_date: int | None,
    source_bucket: str,
    private_bucket: str,
    public_bucket: str,
    whitelist_file_path: str | None,
    endpoint_url: str | None,
    maximum_archive_size_in_mb: int,
) -> None:
    try:
        embargo_processor = EmbargoProcessor(
            blob_store=S3BlobStore(endpoint_url=endpoint_url),
            source_container=source_bucket,
            private_container=private_bucket,
            public_container=public_bucket,
            whitelist=_load_whitelist(whitelist_file_path=whitelist_file_path),
            maximum_archive_size_in_bytes=maximum_archive_size_in_mb * 10**6,
        )
        summary = embargo_processor.embargo_one_day(date=date, cutoff_date=cutoff_date)
    except EmbargoError as exception:
        raise click.ClickException(message=str(exception)) from exception

    click.echo(f"Done with embargo on {len(summary.processed_object_keys)} archives for date: {date}")

    return None


@click.command(name="embargo_single_file")
@click.option(
    "--object_key",
    help="The key of the archive to embargo, e.g., 'sidestream/2017/05/16/20170516T000000Z-mlab1-atl06-sidestream-0000.tgz'.",
    required=True,
    type=str,
)
@click.option(
    "--cutoff_date",
    help="Records collected before this date (YYYYMMDD) are always public. Defaults to exactly one year ago.",
    required=False,
    type=click.IntRange(min=0),
    default=None,
)
@click.option("--source_bucket", required=True, type=str, envvar="ETL_EMBARGO_SOURCE_BUCKET")
@click.option("--private_bucket", required=True, type=str, envvar="ETL_EMBARGO_PRIVATE_BUCKET")
@click.option("--public_bucket", required=True, type=str, envvar="ETL_EMBARGO_PUBLIC_BUCKET")
@click.option(
    "--whitelist_file_path",
    required=False,
    type=click.Path(exists=True, dir_okay=False),
    default=None,
)
@click.option("--endpoint_url", required=False, type=str, default=None, envvar="ETL_EMBARGO_ENDPOINT_URL")
def _embargo_single_file_cli(
    object_key: str,
    cutoff_date: int | None,
    source_bucket: str,
    private_bucket: str,
    public_bucket: str,
    whitelist_file_path: str | None,
    endpoint_url: str | None,
) -> None:
    try:
        embargo_processor = EmbargoProcessor(
            blob_store=S3BlobStore(endpoint_url=endpoint_url),
            source_container=source_bucket,
            private_container=private_bucket,
            public_container=public_bucket,
            whitelist=_load_whitelist(whitelist_file_path=whitelist_file_path),
        )
        embargo_processor.embargo_single_file(object_key=object_key, cutoff_date=cutoff_date)
    except (EmbargoError, ValueError) as exception:
        raise click.ClickException(message=str(exception)) from exception

    click.echo(f"Done with embargo single file {object_key}")

    return None


@click.command(name="unembargo_one_day")
@click.option(
    "--date",
    help="The collection date of the embargoed archives to release, as YYYYMMDD or YYYY/MM/DD.",
    required=True,
    type=str,
)
@click.option("--private_bucket", required=True, type=str, envvar="ETL_EMBARGO_PRIVATE_BUCKET")
@click.option("--public_bucket", required=True, type=str, envvar="ETL_EMBARGO_PUBLIC_BUCKET")
@click.option("--endpoint_url", required=False, type=str, default=None, envvar="ETL_EMBARGO_ENDPOINT_URL")
def _unembargo_one_day_cli(date: str, private_bucket: str, public_bucket: str, endpoint_url: str | None) -> None:
    unembargo_migrator = UnembargoMigrator(
        blob_store=S3BlobStore(endpoint_url=endpoint_url),
        private_container=private_bucket,
        public_container=public_bucket,
    )
    try:
        migrated_keys = unembargo_migrator.unembargo_one_day(date=date)
    except EmbargoError as exception:
        raise click.ClickException(message=str(exception)) from exception

    click.echo(f"Done with unembargo of {len(migrated_keys)} archives for date: {date}")

    return None


@click.command(name="check_embargo")
@click.option(
    "--file_names",
    help="A comma-separated list of record filenames, e.g., '20170225T23:00:00Z_4.34.58.34_0.web100.gz'.",
    required=True,
    type=str,
)
@click.option(
    "--cutoff_date",
    help="Records collected before this date (YYYYMMDD) are always public. Defaults to exactly one year ago.",
    required=False,
    type=click.IntRange(min=0),
    default=None,
)
@click.option(
    "--whitelist_file_path",
    help="A local file listing one whitelisted IP address per line. Defaults to the site IP feed of the project.",
    required=False,
    type=click.Path(exists=True, dir_okay=False),
    default=None,
)
def _check_embargo_cli(file_names: str, cutoff_date: int | None, whitelist_file_path: str | None) -> None:
    try:
        whitelist = _load_whitelist(whitelist_file_path=whitelist_file_path)
    except EmbargoError as exception:
        raise click.ClickException(message=str(exception)) from exception

    if cutoff_date is None:
        cutoff_date = get_default_cutoff_date()
    for file_name in file_names.split(","):
        is_embargoed = should_embargo(file_name=file_name, whitelist=whitelist, cutoff_date=cutoff_date)
        click.echo(f"{file_name}\t{'embargoed' if is_embargoed else 'public'}")

    return None


@click.command(name="reload_whitelist")
@click.option(
    "--whitelist_file_path",
    help="A local file listing one whitelisted IP address per line. Defaults to the site IP feed of the project.",
    required=False,
    type=click.Path(exists=True, dir_okay=False),
    default=None,
)
@click.option(
    "--url",
    help="The site IP feed to load instead of the feed of the project.",
    required=False,
    type=str,
    default=None,
)
def _reload_whitelist_cli(whitelist_file_path: str | None, url: str | None) -> None:
    whitelist = SiteWhitelist()
    try:
        if whitelist_file_path is not None:
            whitelist.load_from_file(file_path=whitelist_file_path)
        else:
            whitelist.load_from_url(url=url)
    except EmbargoError as exception:
        raise click.ClickException(message=str(exception)) from exception

    click.echo(f"Loaded {len(whitelist)} whitelisted IP addresses.")

    return None
