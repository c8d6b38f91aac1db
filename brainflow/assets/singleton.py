from __future__ import annotations

from pathlib import Path

from brainflow.assets.registry import ContentCatalog, load_catalog


_CATALOG: ContentCatalog | None = None


def init_catalog(*, project_root: Path, strict: bool = False) -> ContentCatalog:
    """Load the content catalog once and cache it.

    Safe to call multiple times; subsequent calls return the already loaded instance.
    The catalog is read-only content; flow and session state never live here.
    """

    global _CATALOG
    if _CATALOG is None:
        _CATALOG = load_catalog(root=project_root, strict=strict)
    return _CATALOG


def reset_catalog_for_tests() -> None:
    global _CATALOG
    _CATALOG = None


def get_catalog() -> ContentCatalog:
    if _CATALOG is None:
        raise RuntimeError("Catalog not initialized. Call init_catalog() at startup.")
    return _CATALOG
