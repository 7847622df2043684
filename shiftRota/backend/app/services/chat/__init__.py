"""Per-schedule chat rooms and the global lobby chat."""
