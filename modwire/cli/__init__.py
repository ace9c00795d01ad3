"""modwire command-line interface."""
