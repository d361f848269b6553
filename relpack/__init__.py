"""relpack: release-packaging pipeline for autotools projects."""

__version__ = "0.1.0"
