"""cycle-finder: find possible strong-reference cycles between declared types."""

from __future__ import annotations

__version__ = "0.1.0"
