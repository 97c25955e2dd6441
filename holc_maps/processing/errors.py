"""Exceptions and warnings raised by the processing steps."""

from typing import Optional


class HolcMapsError(Exception):
    """Base class for unrecoverable pipeline errors."""

    def __init__(self, message: str, dataset: Optional[str] = None):
        self.dataset = dataset
        if dataset:
            message = f"[{dataset}] {message}"
        super().__init__(message)


class ProjectionError(HolcMapsError):
    """A coordinate transform could not be resolved or left the projection domain."""


class GeometryError(HolcMapsError):
    """A geometry is invalid and could not be repaired."""


class EmptyInputWarning(UserWarning):
    """A filter step produced zero records. Not fatal."""
