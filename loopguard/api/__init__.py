"""HTTP surface for loopguard."""
