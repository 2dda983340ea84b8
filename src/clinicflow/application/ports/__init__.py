"""Application ports (interfaces implemented by adapters)."""
