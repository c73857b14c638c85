"""loopguard — circularity monitoring and operator interruption for agent loops."""

__version__ = "0.1.0"
