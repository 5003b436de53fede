"""Value types shared by the crop engine."""
