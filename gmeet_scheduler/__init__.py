"""Google Meet booking bridge: free-slot lookup and meeting creation."""

__version__ = "0.1.0"
