"""Command-line client for the Pulse task scheduling service."""

__version__ = "0.1.0"
