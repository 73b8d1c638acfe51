"""blob-mirror: mirror GitHub files into Discord messages."""

__version__ = "0.1.0"
