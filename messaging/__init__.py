"""Per-recipient messaging: message fan-out, recipient state and threads."""

__version__ = "0.4.0"
