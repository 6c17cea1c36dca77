"""Debug HTTP surface."""
