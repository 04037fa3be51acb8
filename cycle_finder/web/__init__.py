"""HTTP API for running cycle analysis on posted declarations."""

from cycle_finder.web.app import create_app

__all__ = ["create_app"]
