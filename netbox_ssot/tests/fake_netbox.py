"""In-memory NetBox API used by the tests in place of `NetBoxClient`."""

from collections import defaultdict
from copy import deepcopy
from typing import Any, Dict, List, Mapping, Optional, Tuple

from packaging.version import Version

from netbox_ssot.base import Uid, logger


class FakeNetBoxClient:
    """Stores records per API path and records all calls.

    Writes can be configured to fail:
        `create_errors` maps API path, or `(API path, name)`, to the exception raised by `create`.
        `delete_errors` maps `(API path, id)` to the exception raised by `delete`.
    """

    url = "https://netbox.example.com"

    def __init__(self, version: str = "4.1"):
        """Initialize the fake."""
        self.version = Version(version)
        self.records: Dict[str, Dict[Uid, Dict[str, Any]]] = defaultdict(dict)
        self.calls: List[Tuple[str, str, Any]] = []
        self.create_errors: Dict[Any, Exception] = {}
        self.delete_errors: Dict[Tuple[str, Uid], Exception] = {}
        self._last_id = 0

    def add_record(self, path: str, **data) -> Uid:
        """Add a record directly, as if created by someone else."""
        self._last_id += 1
        self.records[path][self._last_id] = {**deepcopy(data), "id": self._last_id}
        return self._last_id

    def find_record(self, path: str, **data) -> Optional[Dict[str, Any]]:
        """Find the first record matching all given values."""
        for record in self.records[path].values():
            if all(record.get(key, None) == value for key, value in data.items()):
                return record
        return None

    @property
    def writes(self) -> List[Tuple[str, str, Any]]:
        """Get all calls changing data."""
        return [call for call in self.calls if call[0] != "GET"]

    def reset_calls(self) -> None:
        """Forget recorded calls."""
        self.calls.clear()

    def get_version(self) -> Version:
        """Get the NetBox version."""
        return self.version

    def get_all(self, path: str):
        """Get all records of the path."""
        self.calls.append(("GET", path, None))
        for record in list(self.records[path].values()):
            yield deepcopy(record)

    def create(self, path: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Create a new record."""
        self.calls.append(("POST", path, deepcopy(dict(data))))
        error = self.create_errors.get(path, None) or self.create_errors.get((path, data.get("name", None)), None)
        if error:
            raise error

        uid = self.add_record(path, **data)
        logger.debug("Fake create", path=path, uid=uid)
        return deepcopy(self.records[path][uid])

    def patch(self, path: str, uid: Uid, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Update the record."""
        self.calls.append(("PATCH", path, (uid, deepcopy(dict(data)))))
        record = self.records[path][uid]
        for key, value in data.items():
            if key == "custom_fields":
                record[key] = {**(record.get(key, None) or {}), **value}
            else:
                record[key] = deepcopy(value)
        return deepcopy(record)

    def delete(self, path: str, uid: Uid) -> bool:
        """Delete the record."""
        self.calls.append(("DELETE", path, uid))
        if (path, uid) in self.delete_errors:
            raise self.delete_errors[(path, uid)]

        return self.records[path].pop(uid, None) is not None
