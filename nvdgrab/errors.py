"""Exception types raised by nvdgrab.

Every error the CLI knows how to report derives from ``NvdGrabError`` and
carries the process exit code it maps to.
"""


class NvdGrabError(Exception):
    """Base class for all nvdgrab errors."""

    exit_code = 1


class ArgumentError(NvdGrabError):
    """Invalid command-line input (year range, schema path)."""

    exit_code = 2


class SchemaError(NvdGrabError):
    """Base class for schema loading problems."""

    exit_code = 3


class SchemaLoadError(SchemaError):
    """The schema file could not be opened or read."""


class SchemaFormatError(SchemaError):
    """A schema definition is malformed.

    Attributes:
        line_no: 1-based line number of the offending definition, or
            ``None`` for structured (JSON/YAML) schema files.
        line: The offending line or entry as text.
    """

    def __init__(self, message: str, line_no: int | None = None, line: str = ""):
        self.line_no = line_no
        self.line = line
        if line_no is not None:
            message = f"line {line_no}: {message}: {line!r}"
        elif line:
            message = f"{message}: {line!r}"
        super().__init__(message)


class EncodingError(NvdGrabError):
    """A decoded page cannot be treated as a collection of records."""

    exit_code = 4


class TransportError(NvdGrabError):
    """Network failure, malformed response, or retries exhausted."""

    exit_code = 5


class UnexpectedStatusError(TransportError):
    """The API answered with a status that is neither success nor throttling."""

    def __init__(self, status: int, url: str = ""):
        self.status = status
        self.url = url
        super().__init__(f"Unexpected HTTP status {status} from {url or 'NVD API'}")


class RateLimitExceeded(TransportError):
    """The API kept throttling after the configured number of cooldowns."""
