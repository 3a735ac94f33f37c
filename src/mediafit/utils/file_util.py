"""
Naming helpers for chunk and result files.

This module splits source names into base and extension the same way for every
workflow and builds the output names for chunks, compressed results, and
converted results.
"""
import os
from pathlib import Path
from typing import Iterable, Tuple

from mediafit.utils.constants import DEFAULT_CHUNK_EXT


def sanitize_filename(name: str) -> str:
    """
    Remove invalid filesystem characters from a name.
    Uses str.translate() for optimal performance.
    """
    invalid_chars = '<>:"/\\|?*'
    translation_table = str.maketrans('', '', invalid_chars)
    return name.translate(translation_table).strip()


def split_name(file_name: str, default_ext: str = DEFAULT_CHUNK_EXT) -> Tuple[str, str]:
    """Split `file_name` at its last dot into (base, ext); ext falls back to `default_ext`."""
    if "." not in file_name:
        return file_name, default_ext
    dot = file_name.rindex(".")
    return file_name[:dot], file_name[dot:]


def chunk_name(file_name: str, index: int) -> str:
    """Name of the `index`-th (1-based) chunk cut from `file_name`."""
    base, ext = split_name(file_name)
    return f"{base}_part{index:03d}{ext}"


def compressed_name(file_name: str) -> str:
    base, _ = split_name(file_name)
    return f"{base}_compressed.mp4"


def converted_name(file_name: str, output_format: str) -> str:
    base, _ = split_name(file_name)
    return f"{base}.{output_format}"


def extension_of(path: str) -> str:
    """Lowercase extension without the dot ('' when there is none)."""
    return Path(path).suffix.lower().lstrip(".")


def write_output(out_root: Path, name: str, data: bytes) -> Path:
    """Write `data` under `out_root` with a sanitized `name` and return the path."""
    out_root.mkdir(parents=True, exist_ok=True)
    dst = out_root / sanitize_filename(name)
    dst.write_bytes(data)
    return dst


def common_root(files: Iterable[Path]) -> Path:
    """Deepest folder containing every one of `files`."""
    return Path(os.path.commonpath([str(Path(f).parent) for f in files]))


def mirrored_dir(src: Path, src_root: Path, out_root: Path) -> Path:
    """Folder under `out_root` that mirrors where `src` sits below `src_root`."""
    return out_root / src.parent.relative_to(src_root)
