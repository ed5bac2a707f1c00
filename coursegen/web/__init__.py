"""HTTP interface for the course pipeline."""
