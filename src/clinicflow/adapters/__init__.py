"""Adapters: stores, collaborators and event delivery."""
