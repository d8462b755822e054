"""Proxy gateway in front of the upstream echo service."""
