"""End-to-end tests for panocut."""
