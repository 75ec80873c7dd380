"""Thin command line client for the table admin REST API."""

__version__ = "0.1.0"
