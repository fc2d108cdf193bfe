"""family-tasks - family task tracker with recurring task generation."""
