"""Domain errors — converter failure taxonomy.

These are returned inside outcomes at the supervisor/probe boundary rather than
raised across it, so callers can render every failure the same way.
"""


class ConverterError(Exception):
    """Base error for all converter operations.

    Use ``raise ConverterError("msg") from cause`` for exception chaining.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(ConverterError):
    """Toolchain missing or misconfigured, or invalid settings."""


class SpawnError(ConverterError):
    """The OS failed to create the external process."""


class AbnormalExitError(ConverterError):
    """The external tool exited with a non-zero or indeterminate code."""

    def __init__(self, message: str, exit_code: int | None) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class MalformedOutputError(ConverterError):
    """The tool ran successfully but its structured output could not be decoded."""


class StreamDrainError(ConverterError):
    """Reading one of the process output streams failed mid-run."""


class ProbeTimeoutError(ConverterError):
    """The inspection subprocess did not finish within its time budget."""


class RequestValidationError(ConverterError):
    """A conversion request failed the optional pre-flight check."""

    def __init__(self, message: str, problems: list[str]) -> None:
        super().__init__(message)
        self.problems = problems
