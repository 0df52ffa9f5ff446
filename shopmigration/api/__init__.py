"""HTTP driver for migration steps."""
