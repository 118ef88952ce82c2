from __future__ import annotations

import os
from pathlib import PurePath

ALLOWED_VIDEO_EXTENSIONS = frozenset(
    {".mp4", ".avi", ".mov", ".mkv", ".wmv", ".flv", ".webm"}
)

# Characters a POSIX shell still interprets inside double quotes.
_SHELL_SPECIAL_IN_DQUOTES = ('\\', '"', "$", "`")


def escape_for_shell(path: str | os.PathLike[str]) -> str:
    """Quote a path so a POSIX shell passes it through as one literal argument.

    Commands are executed from argument lists, so this is only used to render
    copy-pasteable command lines in logs.
    """
    value = os.fspath(path)
    for char in _SHELL_SPECIAL_IN_DQUOTES:
        value = value.replace(char, "\\" + char)
    return f'"{value}"'


def video_extension(name: str | None) -> str:
    if not name:
        return ""
    return PurePath(name).suffix.lower()


def is_acceptable_video_name(name: str | None) -> bool:
    return video_extension(name) in ALLOWED_VIDEO_EXTENSIONS
