"""Domain layer: request lifecycle and clinical-data bundles."""
