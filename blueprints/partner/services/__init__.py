"""Partner services package."""
