"""
Network Layer.

This package handles fetching distribution archives from the vendor's
download server.
"""

from .downloader import Downloader

__all__ = ["Downloader"]
