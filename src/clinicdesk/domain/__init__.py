"""Domain layer: entities, enums, errors and pure services."""
