"""Bot command parsing and reply texts."""

from blobmirror.application.commands.parser import (
    Command,
    FileLocation,
    MirrorRequest,
    parse_command,
    parse_file_url,
    parse_mirror_args,
)

__all__ = [
    "Command",
    "FileLocation",
    "MirrorRequest",
    "parse_command",
    "parse_file_url",
    "parse_mirror_args",
]
