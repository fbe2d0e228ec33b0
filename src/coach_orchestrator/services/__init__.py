"""Services used by the orchestrator endpoint."""
