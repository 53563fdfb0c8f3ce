"""TagWatch: change-detection poller for container-image registries."""

__version__ = "0.3.0"
