"""Chapterhub API - chapter comments, reactions and moderation."""

__version__ = "0.1.0"
