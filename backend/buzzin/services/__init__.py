"""Domain services behind the transport layer."""
