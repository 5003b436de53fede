"""Qt front-end for the crop engine."""
