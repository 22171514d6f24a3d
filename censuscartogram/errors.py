"""
Exceptions raised by censuscartogram.

All of them derive from ValueError so that callers that only care about
bad input can catch that.
"""


class CensusCartogramError(ValueError):
    """Base class for all censuscartogram errors."""


class ConfigurationError(CensusCartogramError):
    """Invalid or inconsistent configuration."""


class CensusDataError(CensusCartogramError):
    """The census table does not have the expected shape or content."""


class BoundaryDataError(CensusCartogramError):
    """The boundary file cannot be turned into one polygon per county."""


class JoinError(CensusCartogramError):
    """
    Population records and county geometries do not match one-to-one.

    Attributes
    ----------
    missing_pairs : list of tuple
        (county, year) pairs present in the geometry but absent from the
        census data.
    unmatched_counties : list of str
        Census counties with no geometry.
    """

    def __init__(self, message, missing_pairs=(), unmatched_counties=()):
        super().__init__(message)
        self.missing_pairs = list(missing_pairs)
        self.unmatched_counties = list(unmatched_counties)


class FrameNotFoundError(CensusCartogramError, KeyError):
    """No cartogram frame exists for the requested year."""

    def __str__(self):
        # KeyError would quote the message
        return str(self.args[0]) if self.args else ""
