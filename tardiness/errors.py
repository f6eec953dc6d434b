class TardinessError(Exception):
    """Base exception: the triggering operation did not complete."""


class UnsupportedFormat(TardinessError):
    """Raised when the file type is not a spreadsheet or a word document."""


class MalformedDocument(TardinessError):
    """Raised when the file cannot be parsed at all (corrupt or unreadable)."""


class EmptyExtraction(TardinessError):
    """Raised when the document parsed but yielded no usable records."""


class MissingRequiredSelection(TardinessError):
    """Raised when a manual-mode import is requested without grade and class."""


class RasterizationFailure(TardinessError):
    """Raised when one report page could not be rendered to an image."""

    def __init__(self, message: str, page_index: int | None = None):
        super().__init__(message)
        self.page_index = page_index


class AssemblyFailure(TardinessError):
    """Raised when the output document could not be built from page images."""
