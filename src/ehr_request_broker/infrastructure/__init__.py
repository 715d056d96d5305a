"""Infrastructure layer: config, persistence, dispatch and REST models."""
