"""UDP transport for controller packets."""
