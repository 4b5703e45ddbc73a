"""DiskMosaic core: sparse-aware disk scanning, zoom navigation and treemap layout."""

__version__ = "0.4.0"
