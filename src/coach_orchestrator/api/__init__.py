"""HTTP surface of the Coach Orchestrator."""
