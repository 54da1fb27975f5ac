from typing import Any


class DocumentException(Exception):
    """General document exception, whenever a specific reason can't be determined."""

    extra: dict[str, Any] = {}

    def __init__(self, *args, **kwargs):
        self.extra = kwargs.pop('extra', self.extra)
        super().__init__(*args)


class MalformedDocumentException(DocumentException):
    pass


class UnsupportedDocumentVersionException(DocumentException):
    pass


class HighlightingException(DocumentException):
    pass


class ConversionException(DocumentException):
    pass
