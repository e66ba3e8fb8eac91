"""Analysis session state machine primitives."""
