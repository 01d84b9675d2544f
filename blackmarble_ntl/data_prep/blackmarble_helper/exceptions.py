"""Exceptions raised while building Black Marble rasters."""


class BlackMarbleError(Exception):
    """Base class for all Black Marble errors."""


class RegionValidationError(BlackMarbleError, ValueError):
    """The region of interest is not a single-row polygon GeoDataFrame."""


class CredentialError(BlackMarbleError):
    """The bearer token is missing or expired."""


class FetchError(BlackMarbleError):
    """A remote resource could not be fetched."""


class TileNotFoundError(BlackMarbleError):
    """A tile ID is not part of the Black Marble tile grid."""


class TileDownloadError(BlackMarbleError):
    """One or more tile files could not be downloaded."""

    def __init__(self, message: str, failed=None):
        super().__init__(message)
        self.failed = dict(failed or {})


class TileDecodeError(BlackMarbleError):
    """A downloaded tile file could not be converted to a raster."""


class VariableNotFoundError(TileDecodeError):
    """The requested variable is not present in the tile file."""


class GridAlignmentError(BlackMarbleError):
    """Rasters to be mosaicked do not share a pixel size."""
