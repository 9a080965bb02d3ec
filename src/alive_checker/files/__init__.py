"""Input identifier files and output result files."""
