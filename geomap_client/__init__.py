"""Client-side note handling: local fallback storage, the HTTP API client and
the controller that routes each note operation to one or the other."""
