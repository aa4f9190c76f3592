"""Provisioner — interactive single-service host installer."""

__version__ = "0.1.0"
