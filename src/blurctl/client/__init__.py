"""Terminal front-end for the blur control session."""
