"""Transform state, crop geometry and crop execution."""
