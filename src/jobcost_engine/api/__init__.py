"""HTTP API for the job cost engine."""
