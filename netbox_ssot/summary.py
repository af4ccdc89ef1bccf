"""Sync summary module."""

import json
from pathlib import Path
from typing import Dict, Generator, List, NamedTuple

from netbox_ssot.base import ContentTypeStr, FieldName, Pathable


class SyncIssue(NamedTuple):
    """Represents an issue encountered during the sync.

    Fields:
        uid: CMDB id of the affected entity, if known
        name: Natural key of the affected entity, if known
        issue_type: Type of issue (e.g., 'DanglingReference', 'OwnershipConflict')
        message: Descriptive error message
        data: Additional contextual data for debugging
    """

    uid: str
    name: str
    issue_type: str
    message: str
    data: Dict[str, str]


# pylint: disable=too-few-public-methods,too-many-instance-attributes
class EntityStats:
    """Entity Type Statistics."""

    # Records loaded from the CMDB API, without duplicate ids
    loaded = 0
    # Duplicate records skipped when loading or indexing
    duplicates = 0
    created = 0
    updated = 0
    unchanged = 0
    deleted = 0
    delete_failed = 0
    # Fields of not owned entities left untouched
    conflicts = 0
    issues = 0


class EntitySummary(NamedTuple):
    """Summarizes an entity type sync results and any issues.

    Fields:
        content_type: Entity content type, e.g. `dcim.device`
        api_path: CMDB API path
        identifiers: Natural key fields
        stats: Statistics of the sync
        issues: List of issues encountered during the sync
        sweep_blocked_reason: Why orphans of this type were not deleted, empty if they were
    """

    content_type: ContentTypeStr
    api_path: str
    identifiers: List[FieldName]
    stats: EntityStats
    issues: List[SyncIssue]
    sweep_blocked_reason: str = ""


class SourceSummary(NamedTuple):
    """Summarizes a single source run."""

    name: str
    completed: bool
    error: str = ""


_FILL_UP_LENGTH = 100


def _fill_up(*values) -> str:
    """Format values into a padded string of consistent length.

    Examples:
        >>> _fill_up("-", "dcim.device")
        "- dcim.device --------------------------------------------------------------------------------------"
    """
    fill = values[0][0]
    result = " ".join(str(value) for value in values) + " " + fill
    return result + (fill * (_FILL_UP_LENGTH - len(result)))


class SyncSummary:
    """Container class for sync summary data."""

    def __init__(self):
        """Initialize the summary with empty collections."""
        self.entities: List[EntitySummary] = []
        self.sources: List[SourceSummary] = []
        self.failed = False

    @property
    def issues_count(self) -> int:
        """Get total count of issues."""
        return sum(len(item.issues) for item in self.entities)

    def load(self, path: Pathable):
        """Load the summary from a JSON file."""
        content = json.loads(Path(path).read_text(encoding="utf-8"))

        self.failed = content.get("failed", False)
        self.sources = [SourceSummary(**item) for item in content.get("sources", [])]

        for entity in content["entities"].values():
            stats = EntityStats()
            for key, value in entity.pop("stats", {}).items():
                setattr(stats, key, value)
            issues = entity.pop("issues", [])
            self.entities.append(
                EntitySummary(
                    **entity,
                    stats=stats,
                    issues=[SyncIssue(**issue) for issue in issues],
                )
            )

    def dump(self, path: Pathable, output_format: str = "json", indent: int = 4):
        """Save the summary to a file.

        Args:
            path (Pathable): Path-like object where to save the summary
            output_format (str): Format to save in ('json' or 'text')
            indent (int): Number of spaces for JSON indentation

        Raises:
            ValueError: If an unsupported output format is specified
        """
        if output_format == "json":
            Path(path).write_text(
                json.dumps(
                    {
                        "failed": self.failed,
                        "sources": [item._asdict() for item in self.sources],
                        "entities": {
                            summary.content_type: {
                                **summary._asdict(),
                                "issues": [issue._asdict() for issue in summary.issues],
                                "stats": summary.stats.__dict__,
                            }
                            for summary in self.entities
                        },
                    },
                    indent=indent,
                ),
                encoding="utf-8",
            )
        elif output_format == "text":
            with open(path, "w", encoding="utf-8") as file:
                for line in self.get_summary():
                    file.write(line + "\n")
        else:
            raise ValueError(f"Unsupported format {output_format}")

    def print(self):
        """Print a formatted summary of the sync to stdout."""
        for line in self.get_summary():
            print(line)

    def get_summary(self) -> Generator[str, None, None]:
        """Generate a formatted text representation of the summary."""
        yield _fill_up("* Sync Summary:")

        yield _fill_up("= Sources:")
        for source in self.sources:
            if source.completed:
                yield f"{source.name}: completed"
            else:
                yield f"{source.name}: aborted | {source.error}"

        yield from self.get_stats()
        yield from self.get_issues()

        yield _fill_up("* End of Sync Summary:", "FAILED" if self.failed else "OK")

    def get_stats(self) -> Generator[str, None, None]:
        """Generate formatted statistics per entity type."""
        yield _fill_up("= Entity Stats:")
        for summary in self.entities:
            # Stats are class level defaults until changed, `vars()` returns only the changed ones
            stats = vars(summary.stats)
            if not stats and not summary.sweep_blocked_reason:
                continue
            yield _fill_up("-", summary.content_type)
            for key, value in stats.items():
                yield f"{key}: {value}"
            if summary.sweep_blocked_reason:
                yield f"sweep blocked: {summary.sweep_blocked_reason}"

    def get_issues(self) -> Generator[str, None, None]:
        """Generate formatted issues grouped by entity type."""
        yield _fill_up("= Sync issues:")
        for summary in self.entities:
            if summary.issues:
                yield _fill_up("-", summary.content_type)
                for issue in summary.issues:
                    yield f"{issue.uid} | {issue.issue_type} | {json.dumps(issue.name)} | {json.dumps(issue.message)}"
