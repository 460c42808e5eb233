"""
spdmfuzz - SPDM fuzz campaign orchestrator

Builds the SPDM fuzz targets once, then fuzzes each of them for a fixed
time slot inside its own persistent session, refusing to start while
crash findings from a previous campaign are still unreviewed.
"""

__version__ = "0.1.0"
