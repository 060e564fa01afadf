"""Capability layer — wiring of the built-in handlers.

``build_registry`` is called by the composition root.  Data-source backends
(calendar store, location provider ...) can be passed in; anything left out
falls back to the default for this host.
"""

from __future__ import annotations

from dataclasses import dataclass

from garden_bridge.capabilities.accessibility import AccessibilityHandler
from garden_bridge.capabilities.applescript import AppleScriptHandler
from garden_bridge.capabilities.audio import AudioHandler
from garden_bridge.capabilities.bluetooth import BluetoothAdapter, BluetoothHandler
from garden_bridge.capabilities.calendar import CalendarHandler
from garden_bridge.capabilities.camera import CameraHandler
from garden_bridge.capabilities.contacts import ContactsHandler
from garden_bridge.capabilities.file import FileHandler
from garden_bridge.capabilities.location import LocationHandler
from garden_bridge.capabilities.music import MusicHandler
from garden_bridge.capabilities.notification import NotificationHandler
from garden_bridge.capabilities.photos import PhotosHandler
from garden_bridge.capabilities.registry import CapabilityRegistry
from garden_bridge.capabilities.reminders import RemindersHandler
from garden_bridge.capabilities.screen import ScreenHandler
from garden_bridge.capabilities.shell import ShellHandler
from garden_bridge.config import LocationConfig, Settings
from garden_bridge.permissions import PermissionGate
from garden_bridge.resources.store import ResourceStore
from garden_bridge.services.calendar import CalendarService, ReminderService
from garden_bridge.services.contacts import ContactsService
from garden_bridge.services.location import (
    IPLocationProvider,
    LocationProvider,
    StaticLocationProvider,
    UnavailableLocationProvider,
)
from garden_bridge.services.photos import DirectoryPhotoLibrary, PhotoLibrary


@dataclass
class ServiceOverrides:
    calendar: CalendarService | None = None
    reminders: ReminderService | None = None
    contacts: ContactsService | None = None
    location: LocationProvider | None = None
    photos: PhotoLibrary | None = None
    bluetooth: BluetoothAdapter | None = None


def default_location_provider(cfg: LocationConfig) -> LocationProvider:
    if cfg.provider == "static" and cfg.static_latitude is not None and cfg.static_longitude is not None:
        return StaticLocationProvider(cfg.static_latitude, cfg.static_longitude)
    if cfg.provider == "ip":
        return IPLocationProvider(cfg.ip_lookup_url)
    return UnavailableLocationProvider()


def build_registry(
    settings: Settings,
    resources: ResourceStore,
    permissions: PermissionGate,
    services: ServiceOverrides | None = None,
) -> CapabilityRegistry:
    """Instantiate every enabled capability in routing order."""
    services = services or ServiceOverrides()
    base_url = settings.server.base_url()

    factories = {
        "calendar": lambda: CalendarHandler(services.calendar, permissions),
        "contacts": lambda: ContactsHandler(services.contacts, permissions),
        "reminders": lambda: RemindersHandler(services.reminders, permissions),
        "photos": lambda: PhotosHandler(
            resources,
            base_url,
            permissions,
            services.photos or DirectoryPhotoLibrary(settings.photos.library_dir),
        ),
        "music": lambda: MusicHandler(permissions),
        "location": lambda: LocationHandler(
            services.location or default_location_provider(settings.location), permissions
        ),
        "applescript": lambda: AppleScriptHandler(permissions),
        "file": lambda: FileHandler(permissions),
        "shell": lambda: ShellHandler(
            permissions,
            shell=settings.shell.shell,
            default_timeout=settings.shell.default_timeout,
            max_timeout=settings.shell.max_timeout,
        ),
        "accessibility": lambda: AccessibilityHandler(permissions),
        "screen": lambda: ScreenHandler(resources, base_url, permissions),
        "camera": lambda: CameraHandler(resources, base_url, permissions),
        "audio": lambda: AudioHandler(resources, base_url, permissions),
        "notification": lambda: NotificationHandler(permissions),
        "bluetooth": lambda: BluetoothHandler(permissions, services.bluetooth),
    }

    registry = CapabilityRegistry()
    for namespace in settings.active_capabilities():
        factory = factories.get(namespace)
        if factory is None:
            registry.record_failure(namespace, "Unknown capability")
            continue
        registry.load(namespace, factory)
    return registry
