"""Domain layer: storage contracts and validation rules."""
