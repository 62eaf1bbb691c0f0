"""Domain layer: pending items, validation rules and the error taxonomy."""
