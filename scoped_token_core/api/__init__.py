"""Caller-facing API handlers."""

from .handlers import ApiResponse, TokenApi

__all__ = ["ApiResponse", "TokenApi"]
