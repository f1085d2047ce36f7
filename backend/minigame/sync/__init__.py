"""Score channel client and transports."""
