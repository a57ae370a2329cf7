"""Custom exceptions for the screenshot renamer."""


class ScreenshotRenamerError(Exception):
    """Base exception for all screenshot renamer errors.

    All service-specific exceptions inherit from this class so the entry point
    can report them in one place.
    """


class ConfigurationError(ScreenshotRenamerError):
    """Raised when startup configuration is invalid.

    Covers bad filename patterns, missing credentials, unreadable config files
    and missing CLI mode flags. These are the only errors that stop the whole
    process, and they are raised before the processing queue starts.

    Example:
        >>> try:
        ...     compile_filename_pattern("not-a-pattern")
        ... except ConfigurationError as e:
        ...     logger.error("Invalid configuration", error=str(e))
    """


class WatchDirectoryError(ConfigurationError):
    """Raised when the watch directory is missing or is not a directory."""


class ProviderError(ScreenshotRenamerError):
    """Raised by a provider transport when the AI endpoint call fails.

    Wraps HTTP errors, timeouts and undecodable response bodies. The
    classification resolver absorbs it, so it never crosses the provider
    boundary.
    """
