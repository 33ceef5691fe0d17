#
# Repository path helpers.
#
from __future__ import annotations

import re


SEPARATOR = "/"

_DUPLICATE_SEPARATORS_RE = re.compile(r"/{2,}")


def concat(directory: str, filename: str) -> str:
    """Join a folder path and a filename pattern with exactly one separator.

    Only the separators at the seam are touched: trailing ones on
    ``directory`` and leading ones on ``filename``. Separators inside either
    operand are kept as they are, so ``concat(concat(d, ""), f)`` equals
    ``concat(d, f)``.
    """

    return directory.rstrip(SEPARATOR) + SEPARATOR + filename.lstrip(SEPARATOR)


def normalize_repo_path(path: str) -> str:
    p = _DUPLICATE_SEPARATORS_RE.sub(SEPARATOR, path.strip().replace("\\", SEPARATOR))
    if not p.startswith(SEPARATOR):
        p = SEPARATOR + p
    if len(p) > 1:
        p = p.rstrip(SEPARATOR)
    return p


def parent_path(path: str) -> str | None:
    p = normalize_repo_path(path)
    if p == SEPARATOR:
        return None
    head, _, _ = p.rpartition(SEPARATOR)
    return head or SEPARATOR


def ancestor_paths(path: str) -> list[str]:
    # Nearest first, root last; includes the path itself.
    out: list[str] = []
    current: str | None = normalize_repo_path(path)
    while current is not None:
        out.append(current)
        current = parent_path(current)
    return out


def path_no_end_separator(filename: str) -> str:
    # "/reports/Sales.*" -> "reports"; "Sales.*" -> ""
    head, sep, _ = filename.rpartition(SEPARATOR)
    if not sep:
        return ""
    return head.strip(SEPARATOR)


def base_name(filename: str) -> str:
    return filename.rstrip(SEPARATOR).rpartition(SEPARATOR)[2]
