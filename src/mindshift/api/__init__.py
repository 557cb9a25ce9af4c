"""HTTP surface of the triage core."""
