"""Exception hierarchy shared by the scan pipeline, workers and API."""

from __future__ import annotations


class SEOHealthError(Exception):
    """Base class for all service errors."""


class DomainNotFoundError(SEOHealthError):
    """The requested domain does not exist. Fatal for a scan: nothing is written."""

    def __init__(self, domain_id: object):
        super().__init__(f"Domain {domain_id} not found")
        self.domain_id = domain_id


class ScanInputError(SEOHealthError):
    """The scan cannot start, e.g. the start URL is not a crawlable http(s) URL."""


class ScanInProgressError(SEOHealthError):
    """Another scan of the same domain holds the advisory lock."""

    def __init__(self, domain_id: object):
        super().__init__(f"A scan of domain {domain_id} is already running")
        self.domain_id = domain_id


class StorageError(SEOHealthError):
    """A repository write failed."""
