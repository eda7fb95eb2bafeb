"""Pure computation pipeline, domain types, services and ORM models."""
