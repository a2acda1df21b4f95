"""Infrastructure layer: configuration, logging, stores, fan-out and authentication."""
