"""Output rendering for ServiceResult (Rich for humans, JSON for machines)."""
