"""
srcview - source viewer with layered annotation overlays.

Subpackages:
- core: scanners, annotators, style registry and viewer session
- services: file loading, fingerprints, settings, attribution sources
- workers: background highlight passes
- ui: Qt renderer adapter and window
"""

__version__ = "0.3.0"

__all__ = ['__version__']
