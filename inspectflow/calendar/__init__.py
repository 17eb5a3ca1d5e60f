"""Calendar event sources."""
