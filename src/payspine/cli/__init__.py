"""payspine command-line interface."""
