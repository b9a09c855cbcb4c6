import datetime

import pytest

import etl_embargo

TODAY = datetime.date(year=2018, month=6, day=1)
PRIVATE_KEY = "sidestream/2017/03/15/20170315T000000Z-mlab3-sea03-sidestream-0000-e.tgz"
OTHER_PRIVATE_KEY = "sidestream/2017/03/15/20170315T000000Z-mlab3-sea03-sidestream-0001-e.tgz"
PUBLIC_KEY = "sidestream/2017/03/15/20170315T000000Z-mlab3-sea03-sidestream-0000.tgz"


class _FailingPutBlobStore(etl_embargo.InMemoryBlobStore):
    fail_on_key: str | None = None

    def put(self, container: str, key: str, content: bytes) -> None:
        if container == "public" and key == self.fail_on_key:
            raise etl_embargo.BlobStoreError(f"Writing '{key}' failed!")

        super().put(container=container, key=key, content=content)


def _fill_blob_store(blob_store: etl_embargo.InMemoryBlobStore) -> etl_embargo.InMemoryBlobStore:
    blob_store.put(container="private", key=PRIVATE_KEY, content=b"private part")
    blob_store.put(container="private", key=OTHER_PRIVATE_KEY, content=b"other private part")
    blob_store.put(container="private", key="sidestream/2017/03/16/another-day-e.tgz", content=b"not today")
    blob_store.put(container="public", key=PUBLIC_KEY, content=b"public part")
    blob_store.put(container="public", key=OTHER_PRIVATE_KEY, content=b"stale copy")

    return blob_store


@pytest.fixture
def blob_store() -> etl_embargo.InMemoryBlobStore:
    return _fill_blob_store(blob_store=etl_embargo.InMemoryBlobStore(page_size=1))


def test_unembargo_one_day(blob_store: etl_embargo.InMemoryBlobStore) -> None:
    unembargo_migrator = etl_embargo.UnembargoMigrator(
        blob_store=blob_store, private_container="private", public_container="public"
    )

    migrated_keys = unembargo_migrator.unembargo_one_day(date="20170315", today=TODAY)

    assert migrated_keys == [PRIVATE_KEY, OTHER_PRIVATE_KEY]
    assert unembargo_migrator.state == etl_embargo.MigrationState.DONE
    assert unembargo_migrator.error is None

    public_keys = etl_embargo.iterate_keys(blob_store=blob_store, container="public", prefix="sidestream/2017/03/15")
    assert list(public_keys) == [PRIVATE_KEY, PUBLIC_KEY, OTHER_PRIVATE_KEY]
    assert blob_store.get(container="public", key=PRIVATE_KEY) == b"private part"
    assert blob_store.get(container="public", key=OTHER_PRIVATE_KEY) == b"other private part", (
        "An existing public object should be replaced by the private copy!"
    )
    assert blob_store.get(container="public", key=PUBLIC_KEY) == b"public part"

    with pytest.raises(etl_embargo.BlobStoreError):
        blob_store.get(container="public", key="sidestream/2017/03/16/another-day-e.tgz")


def test_unembargo_keeps_private_copies(blob_store: etl_embargo.InMemoryBlobStore) -> None:
    unembargo_migrator = etl_embargo.UnembargoMigrator(
        blob_store=blob_store, private_container="private", public_container="public"
    )
    unembargo_migrator.unembargo_one_day(date="2017/03/15", today=TODAY)

    assert blob_store.get(container="private", key=PRIVATE_KEY) == b"private part"
    assert blob_store.get(container="private", key=OTHER_PRIVATE_KEY) == b"other private part"


def test_unembargo_rerun(blob_store: etl_embargo.InMemoryBlobStore) -> None:
    unembargo_migrator = etl_embargo.UnembargoMigrator(
        blob_store=blob_store, private_container="private", public_container="public"
    )
    unembargo_migrator.unembargo_one_day(date="20170315", today=TODAY)
    migrated_keys = unembargo_migrator.unembargo_one_day(date="20170315", today=TODAY)

    assert migrated_keys == [PRIVATE_KEY, OTHER_PRIVATE_KEY]
    assert blob_store.get(container="public", key=PRIVATE_KEY) == b"private part"


def test_unembargo_failure_sets_failed_state() -> None:
    blob_store = _fill_blob_store(blob_store=_FailingPutBlobStore())
    blob_store.fail_on_key = OTHER_PRIVATE_KEY
    unembargo_migrator = etl_embargo.UnembargoMigrator(
        blob_store=blob_store, private_container="private", public_container="public"
    )

    with pytest.raises(etl_embargo.BlobStoreError):
        unembargo_migrator.unembargo_one_day(date="20170315", today=TODAY)

    assert unembargo_migrator.state == etl_embargo.MigrationState.FAILED
    assert isinstance(unembargo_migrator.error, etl_embargo.BlobStoreError)

    # Copies finished before the failure are kept
    assert blob_store.get(container="public", key=PRIVATE_KEY) == b"private part"


def test_unembargo_missing_private_container() -> None:
    blob_store = etl_embargo.InMemoryBlobStore()
    blob_store.create_container(container="public")
    unembargo_migrator = etl_embargo.UnembargoMigrator(
        blob_store=blob_store, private_container="private", public_container="public"
    )

    with pytest.raises(etl_embargo.BlobStoreError):
        unembargo_migrator.migrate(key_prefix="sidestream/2017/03/15")

    assert unembargo_migrator.state == etl_embargo.MigrationState.FAILED


@pytest.mark.parametrize(
    "date",
    [
        "20080101",  # Before any data was collected
        "20190101",  # In the future
        "20170602",  # Less than one year old
        "20170601",  # Exactly one year old
        "2017-03-15",
        "20170230",
    ],
)
def test_unembargo_rejected_dates(date: str) -> None:
    """Invalid dates are rejected before any listing; the missing containers would otherwise raise BlobStoreError."""
    unembargo_migrator = etl_embargo.UnembargoMigrator(
        blob_store=etl_embargo.InMemoryBlobStore(), private_container="private", public_container="public"
    )

    with pytest.raises(etl_embargo.InvalidDateError):
        unembargo_migrator.unembargo_one_day(date=date, today=TODAY)

    assert unembargo_migrator.state == etl_embargo.MigrationState.IDLE


def test_check_whether_unembargo() -> None:
    assert etl_embargo.check_whether_unembargo(date=20170531, today=TODAY)
    assert not etl_embargo.check_whether_unembargo(date=20170601, today=TODAY)
    assert not etl_embargo.check_whether_unembargo(date=20180101, today=TODAY)
