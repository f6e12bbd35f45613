"""Version information for Reachwatch."""

import os
import platform

__version__ = "1.0.0"

# Set by the container build
BUILD_DATE = os.getenv("REACHWATCH_BUILD_DATE")
GIT_COMMIT = os.getenv("REACHWATCH_GIT_COMMIT")


def get_version_info() -> dict:
    """Version, build and runtime details for the /version endpoint."""
    return {
        "version": __version__,
        "build_date": BUILD_DATE,
        "git_commit": GIT_COMMIT,
        "python_version": platform.python_version(),
    }
