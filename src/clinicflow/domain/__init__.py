"""Domain layer: entities, value objects, events and workflow policies."""
