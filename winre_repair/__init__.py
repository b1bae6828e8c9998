"""Detect and repair the undersized Windows Recovery Environment partition.

The repair shrinks the partition in front of the WinRE partition by 250 MB,
recreates the WinRE partition with the right type and attributes, and
re-registers it with reagentc.
"""

from .__version__ import __version__


__all__ = ["__version__"]
