"""Local network inventory and IPv4 addressing helpers."""
