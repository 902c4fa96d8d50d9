"""
.env support for the scraper process.

Deployments pass credentials through NORTHDATA_USERNAME / NORTHDATA_PASSWORD
or NDS_* variables. For local runs the same variables may sit in a `.env`
file in the working directory; values already present in the environment
always take precedence.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

_LINE_PATTERN = re.compile(
    r"""
    ^(?:export\s+)?
    (?P<key>[A-Za-z_][A-Za-z0-9_]*)
    \s*=\s*
    (?:
        "(?P<double>[^"]*)"
      | '(?P<single>[^']*)'
      | (?P<bare>[^#]*?)
    )
    \s*(?:\#.*)?$
    """,
    re.VERBOSE,
)


def parse_dotenv(text: str) -> dict[str, str]:
    """Parse dotenv content into a mapping.

    Blank lines, comments and lines without an assignment are skipped.
    Quoted values are taken verbatim; bare values end at an inline comment.
    """
    values: dict[str, str] = {}
    for line in text.splitlines():
        match = _LINE_PATTERN.match(line.strip())
        if match is None:
            continue
        value = match.group("double")
        if value is None:
            value = match.group("single")
        if value is None:
            value = match.group("bare") or ""
        values[match.group("key")] = value
    return values


def load_dotenv_if_present(*, dotenv_path: Path | None = None) -> bool:
    """Load a `.env` file into os.environ without overriding set variables.

    Args:
        dotenv_path: File to load. Defaults to `.env` in the working directory.

    Returns:
        True if the file existed and was read.
    """
    path = dotenv_path or Path.cwd() / ".env"
    if not path.is_file():
        return False

    for key, value in parse_dotenv(path.read_text(encoding="utf-8")).items():
        os.environ.setdefault(key, value)
    return True
