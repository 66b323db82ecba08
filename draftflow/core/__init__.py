"""Generation, storage and approval workflows."""
