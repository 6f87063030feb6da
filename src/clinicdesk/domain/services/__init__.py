"""Pure domain services."""

from .queue_merge import merge_registrations, pick_newer_status

__all__ = ["merge_registrations", "pick_newer_status"]
