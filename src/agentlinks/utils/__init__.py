"""Pure path and time helpers shared across AgentLinks."""
