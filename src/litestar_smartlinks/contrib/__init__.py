"""Optional integrations for litestar-smartlinks."""
