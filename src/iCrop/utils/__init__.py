"""Image decoding and external tool helpers."""
