"""nixup — NixOS package update checker for scripts and status bars."""

__version__ = "0.1.0"
