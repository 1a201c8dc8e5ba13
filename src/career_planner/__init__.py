"""career-planner - 12-week career plans, canvases and plan synchronization."""
