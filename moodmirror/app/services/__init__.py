"""Record store, photo preparation, voice and timeline services."""
