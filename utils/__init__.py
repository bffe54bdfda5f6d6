"""Domain services and helpers shared by the blueprints."""
