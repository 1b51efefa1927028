"""Catalog-driven BIOS/firmware update dispatch for managed endpoints."""
from __future__ import annotations

__version__ = "0.1.0"
