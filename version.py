"""
Version information for PlateDashboard.

The VERSION file next to this module wins; an installed distribution's
metadata is used when running from a wheel without the file.
"""

from importlib import metadata
from pathlib import Path

VERSION_FILE = Path(__file__).with_name("VERSION")
DISTRIBUTION_NAME = "plate-dashboard"


def get_version() -> str:
    """Return the application version string."""
    try:
        version = VERSION_FILE.read_text().strip()
        if version:
            return version
    except OSError:
        pass

    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "0.0.0-dev"


__version__ = get_version()
