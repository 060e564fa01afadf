"""Capability layer — handlers, registry and the command router."""

from garden_bridge.capabilities.base import CapabilityHandler, Platform
from garden_bridge.capabilities.registry import CapabilityRegistry
from garden_bridge.capabilities.router import CommandRouter, Registration

__all__ = [
    "CapabilityHandler",
    "CapabilityRegistry",
    "CommandRouter",
    "Platform",
    "Registration",
]
