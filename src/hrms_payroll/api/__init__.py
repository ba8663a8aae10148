"""Backend REST client and wire schemas."""
