"""Scale Turbo API - payment notification and webhook delivery service."""

__version__ = "1.2.0"
