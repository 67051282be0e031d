"""Viewport-triggered, one-shot reveal of page elements."""

from .scheduler import REVEALED_CLASS, RevealScheduler, RevealTarget
from .viewport import ViewportWatcher, intersection_ratios

__all__ = [
    "REVEALED_CLASS",
    "RevealScheduler",
    "RevealTarget",
    "ViewportWatcher",
    "intersection_ratios",
]
