"""Client-side workspace session: capability handles, local index, reconciliation."""
