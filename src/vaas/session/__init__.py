"""Session lifecycle, request correlation, and the receive loop."""
