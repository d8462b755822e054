"""Command-line dashboard for the gateway and upstream services."""
