"""Upstream echo service."""
