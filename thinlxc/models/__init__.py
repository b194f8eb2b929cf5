"""Data models for thin-lxc."""
from .container import Container, SCHEMA_VERSION
from .state import ContainerState, ContainerStatus, ReloadReport

__all__ = [
    'Container',
    'SCHEMA_VERSION',
    'ContainerState',
    'ContainerStatus',
    'ReloadReport',
]
