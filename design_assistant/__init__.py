"""Design-system assistant: catalog resolution, ranking, and tool orchestration."""
