"""CLI tools for mlpipe."""
