import pathlib
import threading

import py
import pytest
import requests

import etl_embargo

EXAMPLES_FOLDER_PATH = pathlib.Path(__file__).parent / "examples"


class _FakeResponse:
    def __init__(self, content: bytes, status_code: int = 200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


def test_load_from_file() -> None:
    whitelist = etl_embargo.SiteWhitelist()
    whitelist.load_from_file(file_path=EXAMPLES_FOLDER_PATH / "whitelist")

    assert whitelist.contains(ip_address="213.244.128.170")
    assert "4.34.58.1" in whitelist
    assert whitelist.contains(ip_address="2001:4c08:2003:2::16"), "IPv6 entries should be normalized!"
    assert not whitelist.contains(ip_address="4.34.58.34")
    assert not whitelist.contains(ip_address=None)
    assert len(whitelist) == 3, "Blank lines and duplicates should not count!"


def test_load_from_missing_file(tmpdir: py.path.local) -> None:
    tmpdir = pathlib.Path(tmpdir)

    whitelist = etl_embargo.SiteWhitelist()
    with pytest.raises(etl_embargo.WhitelistLoadError):
        whitelist.load_from_file(file_path=tmpdir / "does_not_exist")


def test_load_from_empty_file_keeps_previous_snapshot(tmpdir: py.path.local) -> None:
    tmpdir = pathlib.Path(tmpdir)
    empty_file_path = tmpdir / "empty_whitelist"
    empty_file_path.write_text("\n\n")

    whitelist = etl_embargo.SiteWhitelist(ip_addresses=["213.244.128.170"])
    with pytest.raises(etl_embargo.WhitelistLoadError):
        whitelist.load_from_file(file_path=empty_file_path)

    assert whitelist.snapshot == frozenset({"213.244.128.170"})


def test_parse_site_ip_json_excludes_partner_sites() -> None:
    body = (EXAMPLES_FOLDER_PATH / "mlab-host-ips.json").read_bytes()

    ip_addresses = etl_embargo.parse_site_ip_json(body=body)

    expected_ip_addresses = {
        "213.244.128.170",
        "2001:4c08:2003:2::16",
        "213.244.128.171",
        "2001:5a0:4300::2b",
    }
    assert ip_addresses == expected_ip_addresses
    assert "4.34.58.34" not in ip_addresses, "Sites hosted by a third party should never be whitelisted!"
    assert "" not in ip_addresses


@pytest.mark.parametrize("body", [b"not json", b'{"hostname": "mlab1"}', b'[{"ipv4": "1.2.3.4"}]'])
def test_parse_site_ip_json_invalid(body: bytes) -> None:
    with pytest.raises(etl_embargo.WhitelistLoadError):
        etl_embargo.parse_site_ip_json(body=body)


def test_load_from_url(monkeypatch: pytest.MonkeyPatch) -> None:
    body = (EXAMPLES_FOLDER_PATH / "mlab-host-ips.json").read_bytes()
    requested_urls = list()

    def fake_get(url: str, timeout: float) -> _FakeResponse:
        requested_urls.append(url)
        return _FakeResponse(content=body)

    monkeypatch.setattr(requests, "get", fake_get)
    monkeypatch.setenv("ETL_EMBARGO_PROJECT", "mlab-oti")

    whitelist = etl_embargo.SiteWhitelist()
    whitelist.load_from_url()

    assert requested_urls == [
        "https://storage.googleapis.com/operator-mlab-oti/metadata/v0/current/mlab-host-ips.json"
    ]
    assert whitelist.contains(ip_address="213.244.128.171")
    assert not whitelist.contains(ip_address="4.34.58.34")


def test_load_from_url_http_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(requests, "get", lambda url, timeout: _FakeResponse(content=b"", status_code=503))

    whitelist = etl_embargo.SiteWhitelist()
    with pytest.raises(etl_embargo.WhitelistLoadError):
        whitelist.load_from_url(url="https://example.invalid/mlab-host-ips.json")


def test_load_from_url_connection_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_get(url: str, timeout: float) -> _FakeResponse:
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(requests, "get", fake_get)

    whitelist = etl_embargo.SiteWhitelist()
    with pytest.raises(etl_embargo.WhitelistLoadError):
        whitelist.load_from_url(url="https://example.invalid/mlab-host-ips.json")


def test_reload_is_never_observed_partially() -> None:
    """Concurrent readers only ever see one of the two complete snapshots."""
    first_snapshot = frozenset(f"10.0.0.{index}" for index in range(200))
    second_snapshot = frozenset(f"10.0.1.{index}" for index in range(200))
    whitelist = etl_embargo.SiteWhitelist(ip_addresses=first_snapshot)

    observed_snapshots = set()
    stop = threading.Event()

    def read() -> None:
        while not stop.is_set():
            observed_snapshots.add(whitelist.snapshot)

    reader = threading.Thread(target=read)
    reader.start()
    for _ in range(50):
        whitelist._swap(ip_addresses=second_snapshot)
        whitelist._swap(ip_addresses=first_snapshot)
    stop.set()
    reader.join()

    assert observed_snapshots <= {first_snapshot, second_snapshot}
