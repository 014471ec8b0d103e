"""Theme authoring backend: upload sessions, staging and promotion of card images."""
