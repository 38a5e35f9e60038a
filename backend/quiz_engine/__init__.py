"""Quiz attempt lifecycle and auto-grading engine."""
