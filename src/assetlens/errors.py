"""Exception types raised at the assetlens boundaries.

The normalization core (header resolution, coercion, aggregation) never
raises; these are reserved for file decoding, configuration and job lookup.
"""
from __future__ import annotations


class AssetLensError(Exception):
    """Base class for all assetlens errors."""


class InputFileError(AssetLensError):
    """Raised when an uploaded file cannot be decoded into rows."""


class ConfigError(AssetLensError):
    """Raised when a configuration file is missing, malformed or invalid."""


class JobNotFoundError(AssetLensError):
    """Raised when a job id is not present in the job store."""

    def __init__(self, job_id: str):
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id
