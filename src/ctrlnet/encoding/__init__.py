"""Wire encoding for controller packets."""
