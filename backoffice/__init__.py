"""Back-office API: authenticated sessions and permission management."""
