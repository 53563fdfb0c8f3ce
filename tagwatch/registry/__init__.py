"""Registry listers for TagWatch.

Exports:
    RegistryLister          -- Abstract base every lister implements.
    DockerRegistryV2Lister  -- Docker Registry HTTP API v2 implementation.
"""

from tagwatch.registry.base import RegistryLister
from tagwatch.registry.docker_v2 import DockerRegistryV2Lister

__all__ = ["DockerRegistryV2Lister", "RegistryLister"]
