"""HTTP API for feedcore."""
