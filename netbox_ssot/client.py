"""NetBox REST API client."""

import re
from typing import Any, Dict, Generator, Mapping, Optional

import requests
import urllib3
from packaging.version import Version
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from netbox_ssot.base import Uid, logger
from netbox_ssot.generator.exceptions import CmdbRequestError, CreateConflict, TransientIOError

TRANSIENT_STATUS_CODES = (429, 500, 502, 503, 504)
# POST is never retried, a repeated create could duplicate an entity
RETRY_METHODS = ("GET", "PATCH", "DELETE")

_DUPLICATE_EXPRESSION = re.compile(r"already exists|must be unique", re.IGNORECASE)
_VERSION_EXPRESSION = re.compile(r"\d+(\.\d+)*")


# pylint: disable=too-many-instance-attributes
class NetBoxClient:
    """Class for handling communication to the NetBox REST API."""

    # pylint: disable=too-many-arguments
    def __init__(  # noqa: PLR0913
        self,
        url: str,
        token: str,
        verify_ssl: bool = True,
        timeout: float = 30,
        retries: int = 3,
        backoff_factor: float = 0.5,
        page_size: int = 250,
        dry_run: bool = False,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            url (str): NetBox base URL, without the `/api` suffix.
            token (str): NetBox API token.
            verify_ssl (bool, optional): Validate the SSL Certificate. Defaults to True.
            timeout (float, optional): Request timeout in seconds. Defaults to 30.
            retries (int, optional): Retries of idempotent requests on transient errors. Defaults to 3.
            backoff_factor (float, optional): Exponential backoff factor between retries. Defaults to 0.5.
            page_size (int, optional): Page size for listing entities. Defaults to 250.
            dry_run (bool, optional): Don't send any writes to NetBox. Defaults to False.
            session (requests.Session, optional): Customized requests session to use. Defaults to None.
        """
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.page_size = page_size
        self.dry_run = dry_run
        self._dry_run_last_id = 0

        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Token {token}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )
        self._session.verify = verify_ssl
        if not verify_ssl:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        retry_strategy = Retry(
            total=retries,
            backoff_factor=backoff_factor,
            status_forcelist=TRANSIENT_STATUS_CODES,
            allowed_methods=RETRY_METHODS,
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

    def get_url(self, path: str, uid: Optional[Uid] = None) -> str:
        """Get the API URL for the path, and optionally for the entity."""
        result = f"{self.url}/api/{path.strip('/')}/"
        if uid is not None:
            result += f"{uid}/"
        return result

    def request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Send the request, mapping failures to the package exceptions.

        Raises:
            TransientIOError: On connection errors, timeouts and transient status codes, after all retries.
            CmdbRequestError: When NetBox rejects the request.
        """
        kwargs.setdefault("timeout", self.timeout)
        try:
            response = self._session.request(method, url, **kwargs)
        except (requests.ConnectionError, requests.Timeout, requests.exceptions.RetryError) as error:
            raise TransientIOError(f"{method} {url} failed: {error}") from error
        except requests.RequestException as error:
            raise CmdbRequestError(method, url, 0, str(error)) from error

        if response.status_code in TRANSIENT_STATUS_CODES:
            raise TransientIOError(f"{method} {url} failed with status {response.status_code}")
        if not response.ok:
            raise CmdbRequestError(method, url, response.status_code, response.text)

        return response

    def get_version(self) -> Version:
        """Get the NetBox version, e.g. `4.1.3` from `4.1.3-Docker-3.0.2`."""
        response = self.request("GET", self.get_url("status"))
        version = str(response.json().get("netbox-version", ""))
        match = _VERSION_EXPRESSION.match(version)
        if not match:
            raise CmdbRequestError("GET", self.get_url("status"), response.status_code, f"Invalid version `{version}`")
        return Version(match.group(0))

    def get_all(self, path: str) -> Generator[Dict[str, Any], None, None]:
        """Get all records of the path, following pagination `next` links.

        Records can be returned more than once when entities change during pagination, callers have to deduplicate.
        """
        url: Optional[str] = self.get_url(path)
        params: Optional[Dict[str, Any]] = {"limit": self.page_size}
        while url:
            logger.debug("Fetching page", url=url)
            content = self.request("GET", url, params=params).json()
            yield from content.get("results", [])
            url = content.get("next", None)
            # `next` link already contains all parameters
            params = None

    def create(self, path: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Create a new record.

        Raises:
            CreateConflict: When NetBox rejects the record as a duplicate.
        """
        if self.dry_run:
            self._dry_run_last_id -= 1
            logger.info("Dry-run create", path=path, data=dict(data))
            return {**data, "id": self._dry_run_last_id}

        try:
            return self.request("POST", self.get_url(path), json=data).json()
        except CmdbRequestError as error:
            if error.status_code == 400 and _DUPLICATE_EXPRESSION.search(error.body):
                raise CreateConflict(f"{path}: {error.body}") from error
            raise

    def patch(self, path: str, uid: Uid, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Update only the provided fields of the record."""
        if self.dry_run:
            logger.info("Dry-run patch", path=path, uid=uid, data=dict(data))
            return {**data, "id": uid}

        return self.request("PATCH", self.get_url(path, uid), json=data).json()

    def delete(self, path: str, uid: Uid) -> bool:
        """Delete the record.

        Returns:
            bool: False if the record was already deleted.
        """
        if self.dry_run:
            logger.info("Dry-run delete", path=path, uid=uid)
            return True

        try:
            self.request("DELETE", self.get_url(path, uid))
        except CmdbRequestError as error:
            if error.status_code == 404:
                return False
            raise

        return True
