"""
SiteLoader package initializer.
Defines package version and exposes the load entry points.
"""
__version__ = "0.1.0"

from site_loader.engine import LoadResult, SiteLoader, load, start_load  # noqa: E402

__all__ = ["__version__", "LoadResult", "SiteLoader", "load", "start_load"]
