"""HTTP primitives — request, headers, and response types."""
