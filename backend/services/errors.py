"""Error taxonomy for the upload → transcript → alignment workflow."""


class AutoSubError(Exception):
    """Base class for every failure the workflow knows how to surface."""


class ValidationError(AutoSubError):
    """Oversized or non-video upload, or a missing video/transcript."""


class ReadError(AutoSubError):
    """The video bytes could not be read or encoded."""


class ConfigurationError(AutoSubError):
    """No credential for the alignment service is configured."""


class EmptyResponseError(AutoSubError):
    """The alignment service answered without any text."""


class ServiceError(AutoSubError):
    """Transport or remote failure while calling the alignment service."""


class AlignmentInProgressError(AutoSubError):
    """An alignment call for this session is still unresolved."""
