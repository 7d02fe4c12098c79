"""Custom exceptions for bamtofastq."""


class BamToFastqError(Exception):
    """Base exception for all bamtofastq errors."""

    pass


class ConfigurationError(BamToFastqError):
    """Raised when configuration is invalid or missing."""

    pass


class ExternalToolError(BamToFastqError):
    """Raised when an external tool execution fails."""

    def __init__(self, message="", command=None, returncode=None, stderr=None):
        """Initialize ExternalToolError with optional command details.

        Args:
            message: Error message
            command: Command that was executed (list of strings)
            returncode: Exit code from the command
            stderr: Standard error output from the command
        """
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class PipelineError(BamToFastqError):
    """Raised when a pipeline stage fails."""

    pass


class DataError(BamToFastqError):
    """Raised when a sample's data cannot be processed as requested."""

    pass


class RegionError(DataError):
    """Raised when a region token does not match the alignment header."""

    def __init__(self, message="", token=None, available=None):
        super().__init__(message)
        self.token = token
        self.available = list(available or [])


class NotificationError(BamToFastqError):
    """Raised when a completion notification cannot be dispatched."""

    pass


class DependencyError(BamToFastqError):
    """Raised when required external dependencies are missing or incompatible."""

    pass
