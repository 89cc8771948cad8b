"""Platform audio output backends."""
