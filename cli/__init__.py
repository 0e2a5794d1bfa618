"""articrawl command-line interface."""
