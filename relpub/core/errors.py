"""Error codes for CLI exit status.

Values map directly to process exit codes and are used by every command to
signal which kind of failure ended the run.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success (including a ref that is not a release tag)
    - 1: User error (bad ref, unknown platform, invalid config)
    - 2: Environment error (git, cargo or gh missing)
    - 3: Build error (checkout or compilation failed for a platform)
    - 4: Network error (upload to the release store failed)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
