from __future__ import annotations

from pathlib import Path

from brainflow.assets.singleton import init_catalog
from brainflow.config import Settings


def init_catalog_for_app(settings: Settings) -> None:
    # project root is two levels up from this file: brainflow/assets/startup.py
    project_root = settings.assets_root or Path(__file__).resolve().parents[2]
    init_catalog(project_root=project_root, strict=settings.strict_assets)
