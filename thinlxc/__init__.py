"""thin-lxc: copy-on-write LXC containers on a shared base image."""

__version__ = "0.5.0"
