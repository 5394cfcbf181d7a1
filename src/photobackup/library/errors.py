"""Errors reported by the photo library collaborator."""


class PhotoLibraryError(Exception):
    """Base exception for photo library operations."""


class ChangeTokenExpiredError(PhotoLibraryError):
    """Raised when a stored change token can no longer be resolved."""


class ChangeDetailsUnavailableError(PhotoLibraryError):
    """Raised when the library cannot produce change details for a token."""


class AssetUnavailableError(PhotoLibraryError):
    """Raised when asset data only exists in the cloud and is not cached locally."""


class AssetCodecError(PhotoLibraryError):
    """Raised when the library fails to decode or export an asset's media."""
