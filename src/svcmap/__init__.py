"""svcmap — service catalog and dependency graph CLI."""

__version__ = "0.1.0"
