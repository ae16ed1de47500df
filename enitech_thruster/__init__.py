"""CAN protocol handling, SDO/NMT requests, a thruster node and performance monitoring for Enitech thrusters."""

__version__ = "0.1.0"

__all__ = [
    "message",
    "jointstate",
    "protocol",
    "sdo",
    "nmt",
    "joints",
    "monitor",
    "node",
]