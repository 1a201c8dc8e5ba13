"""career-planner test suite."""
