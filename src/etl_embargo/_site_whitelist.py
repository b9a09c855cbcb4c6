"""Loading and holding of the set of host IP addresses whose records are never embargoed."""

import collections.abc
import pathlib
import threading

import pydantic
import requests
from pydantic import BaseModel, TypeAdapter

from ._config import DEFAULT_REQUEST_TIMEOUT_IN_SECONDS, get_site_ip_url
from ._error_collection import _collect_error
from ._exceptions import WhitelistLoadError
from ._filename_parser import IPAddressNormalizationError, normalize_ip_address
from ._globals import _EXCLUDED_HOSTNAME_MARKER


class Site(BaseModel):
    """One entry of the public site IP feed."""

    hostname: str
    ipv4: str = ""
    ipv6: str = ""


_SITES_ADAPTER = TypeAdapter(list[Site])


def parse_site_ip_json(body: str | bytes, excluded_hostname_marker: str = _EXCLUDED_HOSTNAME_MARKER) -> frozenset[str]:
    """
    Parse the body of the site IP feed into a set of normalized IP addresses.

    Entries with an empty address are skipped, as is every site whose hostname contains the excluded marker
    (those hosts are operated by a third party and are never whitelisted).

    Raises
    ------
    WhitelistLoadError
        If the body is not a JSON array of site records.
    """
    try:
        sites = _SITES_ADAPTER.validate_json(body)
    except pydantic.ValidationError as exception:
        raise WhitelistLoadError(f"Cannot parse site IP JSON: {exception}") from exception

    ip_addresses = set()
    for site in sites:
        if excluded_hostname_marker in site.hostname:
            continue

        for ip_address in (site.ipv4, site.ipv6):
            if ip_address == "":
                continue

            normalized = _normalize_whitelisted_ip_address(ip_address=ip_address, source=site.hostname)
            if normalized is not None:
                ip_addresses.add(normalized)

    return frozenset(ip_addresses)


def _normalize_whitelisted_ip_address(*, ip_address: str, source: str) -> str | None:
    try:
        return normalize_ip_address(ip_address=ip_address)
    except IPAddressNormalizationError as exception:
        message = f"Skipping invalid whitelist entry '{ip_address}' from '{source}'.\n\n{exception}"
        _collect_error(message=message, error_type="whitelist")

        return None


class SiteWhitelist:
    def __init__(self, ip_addresses: collections.abc.Iterable[str] | None = None):
        """
        An atomically replaceable set of whitelisted host IP addresses.

        Readers only ever see a complete frozenset; loading builds the new set off to the side and then swaps the
        reference in a single assignment, so a reload is never observed half-built.

        Parameters
        ----------
        ip_addresses : iterable of strings, optional
            The initial IP addresses. These are normalized, and invalid entries are skipped.
        """
        self._write_lock = threading.Lock()
        self._ip_addresses: frozenset[str] = frozenset()

        if ip_addresses is not None:
            self._swap(
                ip_addresses=frozenset(
                    normalized
                    for ip_address in ip_addresses
                    if (normalized := _normalize_whitelisted_ip_address(ip_address=ip_address, source="constructor"))
                    is not None
                )
            )

    def __contains__(self, ip_address: object) -> bool:
        return ip_address in self._ip_addresses

    def __len__(self) -> int:
        return len(self._ip_addresses)

    def __repr__(self) -> str:
        return f"SiteWhitelist(number_of_ip_addresses={len(self)})"

    @property
    def snapshot(self) -> frozenset[str]:
        """The current, immutable set of whitelisted IP addresses."""
        return self._ip_addresses

    def contains(self, ip_address: str | None) -> bool:
        """Return True if the IP address is whitelisted. None (no identifiable host) is never whitelisted."""
        if ip_address is None:
            return False

        return ip_address in self._ip_addresses

    def load_from_url(
        self, url: str | None = None, timeout_in_seconds: float = DEFAULT_REQUEST_TIMEOUT_IN_SECONDS
    ) -> None:
        """
        Replace the whitelist with the contents of the site IP feed.

        Parameters
        ----------
        url : str, optional
            The URL of the JSON feed. Defaults to the feed of the current deployment project.
        timeout_in_seconds : float
            The timeout of the HTTP request.

        Raises
        ------
        WhitelistLoadError
            If the feed cannot be downloaded or parsed, or if it yields no IP addresses.
        """
        url = url or get_site_ip_url()

        try:
            response = requests.get(url=url, timeout=timeout_in_seconds)
            response.raise_for_status()
        except requests.RequestException as exception:
            raise WhitelistLoadError(f"Cannot download site IP JSON from '{url}': {exception}") from exception

        ip_addresses = parse_site_ip_json(body=response.content)
        if len(ip_addresses) == 0:
            raise WhitelistLoadError(f"The site IP JSON from '{url}' did not contain any IP addresses!")

        self._swap(ip_addresses=ip_addresses)

    def load_from_file(self, file_path: str | pathlib.Path) -> None:
        """
        Replace the whitelist with the IP addresses listed in a local file, one per line.

        Raises
        ------
        WhitelistLoadError
            If the file cannot be read or contains no IP addresses.
        """
        file_path = pathlib.Path(file_path)

        try:
            with open(file=file_path) as io:
                lines = io.read().splitlines()
        except (OSError, UnicodeDecodeError) as exception:
            raise WhitelistLoadError(f"Cannot read whitelist file '{file_path}': {exception}") from exception

        ip_addresses = frozenset(
            normalized
            for line in lines
            if line.strip() != ""
            and (normalized := _normalize_whitelisted_ip_address(ip_address=line, source=str(file_path))) is not None
        )
        if len(ip_addresses) == 0:
            raise WhitelistLoadError(f"The whitelist file '{file_path}' did not contain any IP addresses!")

        self._swap(ip_addresses=ip_addresses)

    def _swap(self, *, ip_addresses: frozenset[str]) -> None:
        with self._write_lock:
            self._ip_addresses = ip_addresses
