"""
Event handler registry
"""

from .registry import EventHandler, HandlerRegistry

__all__ = ["EventHandler", "HandlerRegistry"]
