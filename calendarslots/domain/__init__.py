"""Storage collaborators and the expansion orchestrator."""
