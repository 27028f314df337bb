"""DirStore - S3-compatible object storage on a local directory."""

__version__ = "0.1.0"
