from __future__ import annotations

import sys
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[no-redef]


class TomlError(Exception):
    def __init__(self, message: str, doc: str, pos: int, lineno: int, colno: int):
        super().__init__(message)
        self.doc = doc
        self.pos = pos
        self.lineno = lineno
        self.colno = colno

    @classmethod
    def from_decode_error(cls, exc: Exception) -> TomlError:
        """Build from a tomllib/tomli TOMLDecodeError."""
        return cls(
            message=str(exc),
            doc=str(getattr(exc, "doc", "")),
            pos=int(getattr(exc, "pos", 0) or 0),
            lineno=int(getattr(exc, "lineno", 0) or 0),
            colno=int(getattr(exc, "colno", 0) or 0),
        )


def load_toml_from_content(content: str) -> dict[str, Any]:
    """Load TOML from content string."""
    try:
        return tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        raise TomlError.from_decode_error(exc) from exc

