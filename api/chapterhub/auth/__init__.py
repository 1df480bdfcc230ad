"""Viewer authentication and capability checks."""
