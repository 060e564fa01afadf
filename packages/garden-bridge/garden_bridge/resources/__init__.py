"""Resource layer — ephemeral artifact storage."""

from garden_bridge.resources.store import ResourceEntry, ResourceStore, mime_type_for

__all__ = ["ResourceEntry", "ResourceStore", "mime_type_for"]
