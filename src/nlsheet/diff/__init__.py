"""Grid comparison."""
