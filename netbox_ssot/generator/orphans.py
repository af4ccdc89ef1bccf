"""Tracking of tool owned entities not confirmed by any source."""

from collections import defaultdict
from threading import Lock
from typing import TYPE_CHECKING, DefaultDict, Dict, Set

from netbox_ssot.base import ContentTypeStr, Uid, logger

from .exceptions import NetBoxSsotException, PartialDeleteFailure

if TYPE_CHECKING:
    from .inventory import EntityWrapper


class OrphanTracker:
    """Per entity type set of owned CMDB identifiers, not yet seen in the current run."""

    def __init__(self):
        """Initialize the tracker."""
        self._orphans: DefaultDict[ContentTypeStr, Set[Uid]] = defaultdict(set)
        self._lock = Lock()

    def __contains__(self, item) -> bool:
        """Check if `(content_type, uid)` is tracked as an orphan."""
        content_type, uid = item
        return uid in self._orphans.get(content_type, ())

    def add(self, content_type: ContentTypeStr, uid: Uid) -> None:
        """Start tracking an owned entity."""
        with self._lock:
            self._orphans[content_type].add(uid)

    def mark_seen(self, content_type: ContentTypeStr, uid: Uid) -> None:
        """Confirm the entity is present in a source, no-op for untracked entities."""
        with self._lock:
            self._orphans[content_type].discard(uid)

    def get(self, content_type: ContentTypeStr) -> Set[Uid]:
        """Get a copy of remaining orphans for the content type."""
        with self._lock:
            return set(self._orphans.get(content_type, ()))

    def counts(self) -> Dict[ContentTypeStr, int]:
        """Get the count of remaining orphans per content type."""
        with self._lock:
            return {key: len(value) for key, value in self._orphans.items() if value}

    def discard(self, content_type: ContentTypeStr) -> None:
        """Stop tracking all orphans of the content type without deleting them."""
        with self._lock:
            self._orphans.pop(content_type, None)

    def sweep(self, wrapper: "EntityWrapper") -> int:
        """Delete all remaining orphans of the wrapper's content type.

        Failures are collected and raised together as `PartialDeleteFailure` after all deletions were attempted.

        Returns:
            int: Count of deleted entities.
        """
        content_type = wrapper.content_type
        with self._lock:
            uids = sorted(self._orphans.pop(content_type, ()))

        if not uids:
            return 0

        logger.info("Deleting orphans", content_type=content_type, count=len(uids))

        deleted = 0
        failures = {}
        for uid in uids:
            try:
                wrapper.delete(uid)
                deleted += 1
            except NetBoxSsotException as error:
                logger.error("Failed to delete orphan", content_type=content_type, uid=uid, error=str(error))
                failures[uid] = error

        if failures:
            raise PartialDeleteFailure(content_type, failures, len(uids))

        return deleted
