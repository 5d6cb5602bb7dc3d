"""Shared building blocks: value objects, exceptions, events, configuration and the tool base class."""
