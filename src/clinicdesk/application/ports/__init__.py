"""Interfaces the application layer depends on."""
