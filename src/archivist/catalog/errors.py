"""Catalog errors.

Construction and consistency errors signal a programming mistake in the
caller or the scanner; they are never raised for absent source or
destination volumes.
"""


class CatalogError(Exception):
    """Base exception for directory catalog operations."""


class CatalogConstructionError(CatalogError):
    """Raised when a catalog is given the wrong inputs for its role."""


class MissingPrimaryDirectory(CatalogError):
    """Raised when the primary archive directory does not exist."""


class VersionIndexInconsistency(CatalogError):
    """Raised when a version set names a file the scan did not record."""


class VersionRolloverError(CatalogError):
    """Raised when a base name has reached the last available version number."""
