"""Exception hierarchy for the exporter.

Construction-time errors (ConfigurationError) abort startup. Everything
derived from CollectionError is raised during a scrape and is caught at the
single-collector boundary by the orchestrator.
"""

from typing import Optional


class ExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigurationError(ExporterError):
    """Duplicate or inconsistent descriptor/collector setup, or invalid config file."""


class CollectionError(ExporterError):
    """Base class for errors raised while a collector runs."""


class SourceUnavailable(CollectionError):
    """The counter subsystem could not be reached or the query could not run."""


class MalformedSchema(CollectionError):
    """The query succeeded but returned data the mapper cannot interpret."""

    def __init__(self, message: str, class_name: Optional[str] = None, field: Optional[str] = None):
        self.class_name = class_name
        self.field = field
        super().__init__(message)


class MissingRow(CollectionError):
    """A system-wide class returned zero rows where exactly one was expected."""

    def __init__(self, class_name: str):
        self.class_name = class_name
        super().__init__(f"{class_name} returned no rows")


class QueryFailed(CollectionError):
    """A counter class query failed inside a collector."""

    def __init__(self, class_name: str, cause: Exception):
        self.class_name = class_name
        self.cause = cause
        super().__init__(f"query for {class_name} failed: {cause}")
