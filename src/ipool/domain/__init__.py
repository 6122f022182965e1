"""Domain layer: resources, address expansion and reconciliation."""
