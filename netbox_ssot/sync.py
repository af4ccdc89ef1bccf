"""Sync orchestration: feeds source records to the inventory and sweeps orphans."""

import concurrent.futures
from typing import Any, Dict, List, Sequence, Set, Tuple

from netbox_ssot.base import SSOT_TAG_COLOR, ContentTypeStr, RecordData, logger
from netbox_ssot.diffsync.adapters import NetBoxAdapter, SourceAdapter
from netbox_ssot.generator import (
    CmdbRequestError,
    CreateConflict,
    DanglingReference,
    EntityWrapper,
    NetBoxSsotException,
    PartialDeleteFailure,
    RelationMatcher,
    TransientIOError,
)
from netbox_ssot.summary import SourceSummary, SyncSummary

# Errors skipping a single entity, any other error aborts the source
ENTITY_ERRORS = (DanglingReference, CreateConflict, CmdbRequestError, TransientIOError, ValueError)


class SyncOrchestrator:
    """Runs all sources against the NetBox inventory, then deletes orphans."""

    def __init__(self, netbox: NetBoxAdapter, sources: Sequence[SourceAdapter], max_workers: int = 1):
        """Initialize the orchestrator.

        Args:
            netbox (NetBoxAdapter): Inventory of the CMDB, not loaded yet.
            sources (Sequence[SourceAdapter]): Sources, synced in the given order.
            max_workers (int): Count of sources prefetched in parallel.
        """
        self.netbox = netbox
        self.sources = list(sources)
        self.max_workers = max(1, max_workers)

    def run(self) -> SyncSummary:
        """Run the whole sync.

        Raises:
            IndexLoadError: When the CMDB snapshot can't be loaded.
        """
        summary = SyncSummary()

        self.netbox.load()

        prefetch_errors = self.prefetch()
        incomplete: Set[ContentTypeStr] = set()
        all_types = [wrapper.content_type for wrapper in self.netbox.get_ordered_wrappers()]

        for source in self.sources:
            error = prefetch_errors.get(source.name, None)
            if error:
                summary.sources.append(SourceSummary(source.name, False, f"Prefetch failed: {error}"))
                incomplete.update(all_types)
                continue

            source_summary, pending = self.sync_source(source)
            summary.sources.append(source_summary)
            incomplete.update(pending)

        sweep_failed = self.sweep(incomplete)

        summary.entities = self.netbox.summarize()
        summary.failed = sweep_failed or not all(item.completed for item in summary.sources)

        logger.info("Sync finished", failed=summary.failed, issues=summary.issues_count)

        return summary

    def prefetch(self) -> Dict[str, Exception]:
        """Prefetch data of all sources in parallel.

        Returns:
            Dict[str, Exception]: Errors of failed sources by source name.
        """
        errors: Dict[str, Exception] = {}
        if not self.sources:
            return errors

        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(source.prefetch): source for source in self.sources}
            for future in concurrent.futures.as_completed(futures):
                source = futures[future]
                try:
                    future.result()
                except Exception as error:  # pylint: disable=broad-exception-caught
                    logger.error("Source prefetch failed", source=source.name, error=str(error))
                    errors[source.name] = error

        return errors

    def sync_source(self, source: SourceAdapter) -> Tuple[SourceSummary, List[ContentTypeStr]]:
        """Sync all entity types of the source, in the dependency order.

        Returns:
            Tuple[SourceSummary, List[ContentTypeStr]]: The source result and content types it didn't complete.
        """
        logger.info("Syncing source", source=source.name)

        wrappers = self.netbox.get_ordered_wrappers()
        pending = [wrapper.content_type for wrapper in wrappers]
        matcher = RelationMatcher(self.netbox, getattr(source.options, "relations", None))

        tag = getattr(source.options, "tag", "")
        try:
            if tag:
                self.netbox.ensure_tag(
                    tag,
                    getattr(source.options, "tag_color", "") or SSOT_TAG_COLOR,
                    f"Tag used by netbox-ssot source {source.name}",
                )

            for wrapper in wrappers:
                self.sync_entity_type(source, wrapper, matcher, tag)
                pending.remove(wrapper.content_type)
        except NetBoxSsotException as error:
            logger.error("Source aborted", source=source.name, error=str(error), pending=len(pending))
            return SourceSummary(source.name, False, str(error)), pending
        except Exception as error:  # pylint: disable=broad-exception-caught
            logger.error("Source aborted", source=source.name, error=str(error), exc_info=True)
            return SourceSummary(source.name, False, f"{error.__class__.__name__}: {error}"), pending

        logger.info("Source synced", source=source.name)
        return SourceSummary(source.name, True), []

    def sync_entity_type(self, source: SourceAdapter, wrapper: EntityWrapper, matcher: RelationMatcher, tag: str) -> int:
        """Upsert all source records of the entity type.

        Entity level errors are recorded as issues and the entity is skipped.

        Raises:
            UnresolvedRelation: When a relation rule matches a label missing in the CMDB.

        Returns:
            int: Count of committed entities.
        """
        count = 0
        for record in source.list_entities(wrapper.content_type):
            record = matcher.apply(wrapper.content_type, record)
            if tag and wrapper.has_tags:
                record["tags"] = _add_tag(record.get("tags", None), tag)

            try:
                wrapper.add_or_update(record)
            except ENTITY_ERRORS as error:
                wrapper.add_issue(data=record, error=error)
                continue

            count += 1

        if count:
            logger.debug("Synced entity type", source=source.name, content_type=wrapper.content_type, count=count)

        return count

    def sweep(self, incomplete: Set[ContentTypeStr]) -> bool:
        """Delete remaining orphans, in the reverse dependency order.

        Args:
            incomplete (Set[ContentTypeStr]): Content types not completed by some source, not swept.

        Returns:
            bool: True if orphan deletions were attempted and all of them failed.
        """
        attempted = 0
        failed = 0

        for wrapper in reversed(self.netbox.get_ordered_wrappers()):
            content_type = wrapper.content_type
            if content_type in incomplete and not wrapper.sweep_blocked_reason:
                wrapper.sweep_blocked_reason = "Not all sources completed this type"

            if wrapper.sweep_blocked_reason:
                skipped = len(self.netbox.orphans.get(content_type))
                if skipped:
                    logger.warning(
                        "Skipping orphans sweep",
                        content_type=content_type,
                        count=skipped,
                        reason=wrapper.sweep_blocked_reason,
                    )
                self.netbox.orphans.discard(content_type)
                continue

            count = len(self.netbox.orphans.get(content_type))
            attempted += count
            try:
                self.netbox.orphans.sweep(wrapper)
            except PartialDeleteFailure as error:
                failed += len(error.failures)
                wrapper.add_issue(error=error, data=_failures_to_data(error))
                if error.all_failed:
                    logger.error("No orphan deleted", content_type=content_type, count=count)

        return attempted > 0 and failed == attempted


def _add_tag(tags: Any, tag: str) -> List[Any]:
    if not tags:
        result: List[Any] = []
    elif isinstance(tags, (str, dict)):
        result = [tags]
    else:
        result = list(tags)

    result.append({"name": tag})
    return result


def _failures_to_data(error: PartialDeleteFailure) -> RecordData:
    return {str(uid): str(failure) for uid, failure in error.failures.items()}
