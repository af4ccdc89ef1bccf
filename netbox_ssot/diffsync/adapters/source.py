"""Sources of canonical entities."""

from collections import defaultdict
from gzip import GzipFile
from pathlib import Path
from typing import Callable, Dict, Generator, Iterable, List, Mapping, NamedTuple, Optional, Type, Union
from urllib.parse import ParseResult, urlparse

import ijson
import requests

from netbox_ssot.base import ContentTypeStr, Pathable, RecordData, logger
from netbox_ssot.generator import ConfigurationError

_FileRef = Union[str, Path, ParseResult]
_HTTP_TIMEOUT = 60


class SourceRecord(NamedTuple):
    """Canonical entity record."""

    content_type: ContentTypeStr
    data: RecordData


SourceDataGenerator = Callable[[], Iterable[SourceRecord]]


class SourceAdapter:
    """Base class for sources of canonical entities.

    Subclasses translate a platform's native objects into canonical records,
    keyed by CMDB content type and using CMDB field names.
    """

    source_type = ""

    def __init__(self, options):
        """Initialize the source.

        Args:
            options (SourceOptions): Source configuration.
        """
        self.options = options
        self.name = options.name

    def __str__(self) -> str:
        """Return a string representation of the source."""
        return f"{self.__class__.__name__}<{self.name}>"

    def prefetch(self) -> None:
        """Fetch all data from the source, can run in parallel with other sources."""

    def list_entities(self, content_type: ContentTypeStr) -> Iterable[RecordData]:
        """Get canonical records of the content type."""
        raise NotImplementedError


class FileSourceAdapter(SourceAdapter):
    """Source reading canonical records from a JSON file or an HTTP(S) URL.

    The document is a list of `{"model": "<content type>", "fields": {...}}` items.
    """

    source_type = "file"

    def __init__(self, options):
        """Initialize the source."""
        super().__init__(options)
        self._records: Optional[Mapping[ContentTypeStr, List[RecordData]]] = None

    def prefetch(self) -> None:
        """Read and group all records by content type."""
        records: Dict[ContentTypeStr, List[RecordData]] = defaultdict(list)
        count = 0
        for content_type, data in _get_reader(self.options.url)():
            records[content_type.lower()].append(data)
            count += 1

        self._records = records
        logger.info("Source records read", source=self.name, count=count)

    def list_entities(self, content_type: ContentTypeStr) -> Iterable[RecordData]:
        """Get canonical records of the content type."""
        if self._records is None:
            self.prefetch()

        return [dict(item) for item in (self._records or {}).get(content_type, ())]


SOURCE_TYPES: Mapping[str, Type[SourceAdapter]] = {
    FileSourceAdapter.source_type: FileSourceAdapter,
}


def get_source_adapter(options) -> SourceAdapter:
    """Create a source adapter based on the configured type."""
    try:
        source_class = SOURCE_TYPES[options.source_type]
    except KeyError as error:
        raise ConfigurationError(f"Unsupported source type `{options.source_type}` of source {options.name}") from error

    return source_class(options)


def _read_stream(stream) -> Generator[SourceRecord, None, None]:
    for item in ijson.items(stream, "item", use_float=True):
        yield SourceRecord(item["model"], item["fields"])


def _get_reader_from_path(path: Pathable) -> SourceDataGenerator:
    result = Path(path)
    if not result.is_file():
        raise FileNotFoundError(f"File {path} does not exist.")

    def reader():
        with open(result, "rb") as file:
            yield from _read_stream(file)

    return reader


def _get_reader_from_url(url: ParseResult) -> SourceDataGenerator:
    def reader():
        with requests.get(url.geturl(), stream=True, timeout=_HTTP_TIMEOUT) as response:
            response.raise_for_status()
            if response.headers.get("Content-Encoding") == "gzip":
                stream = GzipFile(fileobj=response.raw)
            else:
                stream = response.raw

            yield from _read_stream(stream)

    return reader


def _get_reader(input_ref: _FileRef) -> SourceDataGenerator:
    """Read canonical records from file or HTTP resource."""
    if isinstance(input_ref, str):
        url = urlparse(input_ref)

        if not url.scheme:
            return _get_reader_from_path(input_ref)

        if url.scheme == "file":
            return _get_reader_from_path(url.path)

        if url.scheme in ["http", "https"]:
            return _get_reader_from_url(url)

    if isinstance(input_ref, Path):
        return _get_reader_from_path(input_ref)

    if isinstance(input_ref, ParseResult):
        return _get_reader_from_url(input_ref)

    raise ValueError(f"Unsupported file reference: {input_ref}")
