"""
Mapping between virtual folder/file identifiers and storage key prefixes.

A prefix is a `/`-delimited key fragment. Folder prefixes always end in a single `/`,
never start with one, and the empty string is the root. Every other module routes ids
through normalize() before using them as cache keys or gateway parameters.
"""


def normalize(id: str | None) -> str:
    """
    Normalize a folder id to a prefix: strip leading slashes and ensure exactly one trailing slash.
    None, empty, whitespace-only and "/" all map to the root prefix "".
    """
    if id is None or id.strip() in ("", "/"):
        return ""
    stripped = id.lstrip("/").rstrip("/")
    if not stripped:
        return ""
    return stripped + "/"


def display_name(prefix: str | None) -> str:
    """
    Human readable name of the last segment of a prefix, e.g. "sales-team/" -> "Sales Team".
    Missing or empty prefixes map to "Root"
    """
    if not prefix:
        return "Root"
    no_slash = prefix[:-1] if prefix.endswith("/") else prefix
    if not no_slash.strip():
        return "Root"
    segment = no_slash.split("/")[-1]
    words = [chunk[0].upper() + chunk[1:] for chunk in segment.split("-") if chunk]
    return " ".join(words) or "Root"


def child_prefix(parent: str | None, name: str) -> str:
    return normalize(parent) + name + "/"


def parent_prefix(prefix: str | None) -> str | None:
    """The prefix of the containing folder, or None for the root"""
    prefix = normalize(prefix)
    if not prefix:
        return None
    parts = prefix.rstrip("/").split("/")
    return normalize("/".join(parts[:-1]))


def segments(prefix: str | None) -> list[str]:
    """
    The running prefixes from the top level folder down to the given prefix,
    e.g. "reports/q3/" -> ["reports/", "reports/q3/"]
    """
    result: list[str] = []
    cumulative = ""
    for segment in normalize(prefix).split("/"):
        if segment:
            cumulative += segment + "/"
            result.append(cumulative)
    return result


def file_name(key: str) -> str:
    return key.split("/")[-1]


def folder_of(key: str) -> str:
    """Prefix of the folder containing a document key"""
    return normalize("/".join(key.split("/")[:-1]))
