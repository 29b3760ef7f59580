"""
UI Watch - structural change detection for monitored web pages

This package classifies page structure snapshots (element counts, dialogs,
overlays, forms, stacking, viewport) into none/minor/major changes and
recommends when to capture screenshots or DOM snapshots.

Main modules:
- change_monitor: Change detector engine, metrics collector, per-surface service
- core: Settings
- ui: HTTP API
- cli: Operational CLI (uiwatchctl)
"""

__version__ = "0.1.0"
__author__ = "UI Watch Team"

__all__ = ["__version__", "__author__"]
