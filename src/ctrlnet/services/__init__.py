"""Controller service payloads and error types."""
