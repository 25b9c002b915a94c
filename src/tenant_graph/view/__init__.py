from __future__ import annotations

from .builder import ViewModel, build, build_view

__all__ = [
    "ViewModel",
    "build",
    "build_view",
]
