"""Static file serving with conditional-GET support."""
