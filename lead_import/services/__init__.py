"""Import pipeline services: dedup, identity, assignment, reconciliation, orchestration."""
