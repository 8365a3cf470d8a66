"""
Standard exit codes for gitscan commands.

Following Unix/POSIX conventions for command-line tools.
"""

SUCCESS = 0              # Every matched repository's command succeeded
USAGE_ERROR = 1          # Missing option, bad path, unknown status filter
COMMAND_FAILED = 2       # One or more per-repository commands exited nonzero
LAUNCH_FAILED = 127      # Recorded for a child that could not be started
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = USAGE_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class UsageError(CommandError):
    """Raised for a missing option, nonexistent path or unknown filter."""
    def __init__(self, message: str):
        super().__init__(message, USAGE_ERROR)


class ConfigError(CommandError):
    """Raised when there's a configuration error."""
    def __init__(self, message: str):
        super().__init__(message, USAGE_ERROR)
