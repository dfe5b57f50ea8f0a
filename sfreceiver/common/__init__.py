"""Shared helpers used across sfreceiver subpackages."""
