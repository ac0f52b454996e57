"""Device management helpers: connection profiles, connection strings, BLE types, core dumps, CoAP payloads and log formatting."""

__version__ = "1.14.0.dev0"

__all__ = [
    "bledefs",
    "bll",
    "cli",
    "connconfig",
    "connprofile",
    "coreconvert",
    "logshow",
    "nmutil",
    "resource",
]