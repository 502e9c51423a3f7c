"""
=============================================================================
MIME TYPE TABLE
=============================================================================

Maps file extensions to MIME descriptors.

A descriptor is a (name, compression) pair. ``compression`` says whether
it is worth gzip/deflate-encoding a body of this type: text formats
compress well, images/video/archives are already compressed.

    ".html"  →  MimeType("text/html", compression=True)
    ".png"   →  MimeType("image/png", compression=False)
    ".xyz"   →  None

The table is built once at import time and never mutated. Configuration
extends it by wrapping the lookup (``extend_mime_types``), not by
writing into it.

=============================================================================
"""

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional, Tuple, Union


@dataclass(frozen=True)
class MimeType:
    """A MIME descriptor: the type name and whether it may be compressed."""

    name: str
    compression: bool


# Signature of anything usable as a MIME lookup: extension -> descriptor
MimeTypesMap = Callable[[str], Optional[MimeType]]


def mk_mime_type(name: str, compression: bool) -> MimeType:
    """Create a MIME descriptor."""
    return MimeType(name=name, compression=compression)


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================

_DEFAULT_MIME_TYPES: Mapping[str, MimeType] = MappingProxyType({
    # -------------------------------------------------------------------------
    # TEXT TYPES
    # -------------------------------------------------------------------------
    ".html": mk_mime_type("text/html", True),
    ".htm": mk_mime_type("text/html", True),
    ".css": mk_mime_type("text/css", True),
    ".js": mk_mime_type("application/javascript", True),
    ".mjs": mk_mime_type("application/javascript", True),
    ".json": mk_mime_type("application/json", True),
    ".xml": mk_mime_type("application/xml", True),
    ".txt": mk_mime_type("text/plain", True),
    ".md": mk_mime_type("text/markdown", True),
    ".csv": mk_mime_type("text/csv", True),
    ".map": mk_mime_type("application/json", True),

    # -------------------------------------------------------------------------
    # IMAGE TYPES
    # -------------------------------------------------------------------------
    # SVG is XML text, so it compresses; raster formats don't
    ".svg": mk_mime_type("image/svg+xml", True),
    ".png": mk_mime_type("image/png", False),
    ".jpg": mk_mime_type("image/jpeg", False),
    ".jpeg": mk_mime_type("image/jpeg", False),
    ".gif": mk_mime_type("image/gif", False),
    ".ico": mk_mime_type("image/x-icon", False),
    ".webp": mk_mime_type("image/webp", False),
    ".bmp": mk_mime_type("image/bmp", False),

    # -------------------------------------------------------------------------
    # FONT TYPES
    # -------------------------------------------------------------------------
    ".woff": mk_mime_type("font/woff", False),
    ".woff2": mk_mime_type("font/woff2", False),
    ".ttf": mk_mime_type("font/ttf", True),
    ".otf": mk_mime_type("font/otf", True),
    ".eot": mk_mime_type("application/vnd.ms-fontobject", True),

    # -------------------------------------------------------------------------
    # AUDIO / VIDEO
    # -------------------------------------------------------------------------
    ".mp3": mk_mime_type("audio/mpeg", False),
    ".wav": mk_mime_type("audio/wav", False),
    ".ogg": mk_mime_type("audio/ogg", False),
    ".mp4": mk_mime_type("video/mp4", False),
    ".webm": mk_mime_type("video/webm", False),
    ".avi": mk_mime_type("video/x-msvideo", False),
    ".mov": mk_mime_type("video/quicktime", False),

    # -------------------------------------------------------------------------
    # DOCUMENTS / ARCHIVES
    # -------------------------------------------------------------------------
    ".pdf": mk_mime_type("application/pdf", False),
    ".zip": mk_mime_type("application/zip", False),
    ".gz": mk_mime_type("application/gzip", False),
    ".tar": mk_mime_type("application/x-tar", False),
    ".wasm": mk_mime_type("application/wasm", True),
})


def _normalize(extension: str) -> str:
    extension = extension.lower()
    if extension and not extension.startswith("."):
        extension = "." + extension
    return extension


def default_mime_types_map(extension: str) -> Optional[MimeType]:
    """
    Look up the descriptor for a file extension.

    Total: an unknown extension returns None rather than raising.

        >>> default_mime_types_map(".html")
        MimeType(name='text/html', compression=True)
        >>> default_mime_types_map(".xyz") is None
        True
    """
    return _DEFAULT_MIME_TYPES.get(_normalize(extension))


def extend_mime_types(
    overrides: Mapping[str, Union[MimeType, Tuple[str, bool]]],
    fallback: MimeTypesMap = default_mime_types_map,
) -> MimeTypesMap:
    """
    Build a lookup that consults ``overrides`` before ``fallback``.

    Args:
        overrides: extension -> MimeType or (name, compression) tuple
        fallback: lookup used for anything not overridden

    Example:
        lookup = extend_mime_types({".avif": ("image/avif", False)})
    """
    table: Dict[str, MimeType] = {}
    for extension, descriptor in overrides.items():
        if not isinstance(descriptor, MimeType):
            name, compression = descriptor
            descriptor = mk_mime_type(name, compression)
        table[_normalize(extension)] = descriptor
    frozen = MappingProxyType(table)

    def lookup(extension: str) -> Optional[MimeType]:
        found = frozen.get(_normalize(extension))
        return found if found is not None else fallback(extension)

    return lookup


def mime_type_for(path: Union[str, Path], lookup: MimeTypesMap = default_mime_types_map) -> Optional[MimeType]:
    """Descriptor for a file path, by its (lowercased) suffix."""
    return lookup(Path(path).suffix)

